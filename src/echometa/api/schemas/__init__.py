"""API request and response schemas."""

from echometa.api.schemas.metadata import (
    ConflictListResponse,
    ConflictResponse,
    EnrichmentLogResponse,
    EnrichmentRunResponse,
    HistoryResponse,
    ResolveConflictRequest,
    UpdateSettingRequest,
    ValidateApiKeyRequest,
    ValidateApiKeyResponse,
)

__all__ = [
    "ConflictListResponse",
    "ConflictResponse",
    "EnrichmentLogResponse",
    "EnrichmentRunResponse",
    "HistoryResponse",
    "ResolveConflictRequest",
    "UpdateSettingRequest",
    "ValidateApiKeyRequest",
    "ValidateApiKeyResponse",
]
