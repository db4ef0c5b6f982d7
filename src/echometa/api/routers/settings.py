"""Metadata settings endpoints.

Route prefix: /api/metadata/settings/*
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends

from echometa.api.dependencies import get_orchestrator, get_settings_service
from echometa.api.schemas import (
    UpdateSettingRequest,
    ValidateApiKeyRequest,
    ValidateApiKeyResponse,
)
from echometa.application.services.enrichment_orchestrator import EnrichmentOrchestrator
from echometa.application.services.metadata_settings_service import (
    MetadataSettingsService,
    validate_provider_api_key,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.post("/validate-api-key", response_model=ValidateApiKeyResponse)
async def validate_api_key(body: ValidateApiKeyRequest) -> ValidateApiKeyResponse:
    """Format check only, no request goes to the provider."""
    result = validate_provider_api_key(body.service, body.api_key)
    return ValidateApiKeyResponse(valid=result.valid, message=result.message)


@router.get("")
async def get_settings(
    service: MetadataSettingsService = Depends(get_settings_service),
) -> dict[str, Any]:
    return await service.get_public_settings()


# Hey future me - a write only counts once the orchestrator sees it. We reload the
# whole config and swap it in, runs already in flight keep the config they started with.
@router.put("")
async def update_setting(
    body: UpdateSettingRequest,
    service: MetadataSettingsService = Depends(get_settings_service),
    orchestrator: EnrichmentOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    await service.update_setting(body.key, body.value)
    orchestrator.reconfigure(await service.load_config())
    return await service.get_public_settings()
