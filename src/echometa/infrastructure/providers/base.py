"""Shared plumbing for metadata provider adapters."""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from echometa.domain.entities import (
    EntityType,
    MetadataField,
    ProviderName,
    ProviderResult,
    fields_for,
)
from echometa.domain.exceptions import EnrichmentError, ExternalApiError
from echometa.domain.ports import IMetadataProvider
from echometa.infrastructure.integrations.external_api_client import ApiResult

logger = logging.getLogger(__name__)

MAX_TAGS = 10


def normalize_tags(names: Iterable[Any]) -> list[str]:
    """Lowercase, trimmed, de-duplicated tag names in original order."""
    seen: set[str] = set()
    tags: list[str] = []
    for name in names:
        if not isinstance(name, str):
            continue
        tag = name.strip().lower()
        if tag and tag not in seen:
            seen.add(tag)
            tags.append(tag)
        if len(tags) >= MAX_TAGS:
            break
    return tags


class BaseMetadataProvider(IMetadataProvider):
    """Common result handling for the concrete adapters."""

    name: ProviderName

    def _error(self, result: ApiResult) -> EnrichmentError:
        # Every failure leaving an adapter carries this adapter's provider name
        error = result.error
        if error is None:
            return ExternalApiError(provider=self.name.value, message="unknown failure")
        return error

    def _ok(
        self,
        entity_type: EntityType,
        fields: Mapping[MetadataField, Any],
        fetched_by_id: bool = True,
    ) -> ProviderResult:
        """Build an ok result keeping only supported, non-empty fields."""
        supported = fields_for(entity_type)
        cleaned: dict[MetadataField, Any] = {}
        for metadata_field, value in fields.items():
            if metadata_field not in supported:
                logger.debug(
                    "%s: dropping unsupported field %s for %s",
                    self.name.value,
                    metadata_field.value,
                    entity_type.value,
                )
                continue
            if value is None or value == "" or value == []:
                continue
            cleaned[metadata_field] = value
        return ProviderResult.ok(self.name, cleaned, fetched_by_id=fetched_by_id)
