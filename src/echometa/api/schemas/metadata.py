"""API schemas for enrichment, conflicts and metadata settings.

Hey future me - the browser speaks camelCase, Python speaks snake_case. The shared
model_config below serializes by alias (camelCase) and still accepts snake_case on
input, so tests and the UI can both post bodies without thinking about it.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from echometa.domain.entities import EnrichmentLog, EnrichmentRun, MetadataConflict


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EnrichmentRunResponse(_CamelModel):
    """Returned by the trigger endpoint while the run continues in the background."""

    run_id: str
    entity_type: str
    entity_id: str
    triggered_by: str
    status: str
    phase: str
    started_at: datetime
    message: str = "Enrichment started"

    @classmethod
    def from_entity(cls, run: EnrichmentRun) -> "EnrichmentRunResponse":
        return cls(
            run_id=run.id,
            entity_type=run.entity_type.value,
            entity_id=run.entity_id,
            triggered_by=run.triggered_by,
            status=run.status.value,
            phase=run.phase.value,
            started_at=run.started_at,
        )


class ConflictResponse(_CamelModel):
    id: str
    entity_type: str
    entity_id: str
    entity_name: str
    provider: str
    field: str
    proposed_value: Any = None
    previous_value: Any = None
    preview_url: str | None = None
    confidence: float | None = None
    status: str
    priority: int
    created_at: datetime
    resolved_at: datetime | None = None
    resolved_by: str | None = None

    @classmethod
    def from_entity(cls, conflict: MetadataConflict) -> "ConflictResponse":
        return cls(
            id=conflict.id,
            entity_type=conflict.entity_type.value,
            entity_id=conflict.entity_id,
            entity_name=conflict.entity_name,
            provider=conflict.provider.value,
            field=conflict.field.value,
            proposed_value=conflict.proposed_value,
            previous_value=conflict.previous_value,
            preview_url=conflict.preview_url,
            confidence=conflict.confidence,
            status=conflict.status.value,
            priority=conflict.priority,
            created_at=conflict.created_at,
            resolved_at=conflict.resolved_at,
            resolved_by=conflict.resolved_by,
        )


class ConflictListResponse(_CamelModel):
    items: list[ConflictResponse]
    total: int
    skip: int
    take: int


class ResolveConflictRequest(_CamelModel):
    resolved_by: str | None = Field(default=None, max_length=100)


class EnrichmentLogResponse(_CamelModel):
    id: str
    run_id: str | None = None
    entity_type: str
    entity_id: str
    entity_name: str
    provider: str
    metadata_type: str
    status: str
    fields_updated: list[str]
    error_message: str | None = None
    preview_url: str | None = None
    processing_time_ms: int
    created_at: datetime

    @classmethod
    def from_entity(cls, log: EnrichmentLog) -> "EnrichmentLogResponse":
        return cls(
            id=log.id,
            run_id=log.run_id,
            entity_type=log.entity_type.value,
            entity_id=log.entity_id,
            entity_name=log.entity_name,
            provider=log.provider.value,
            metadata_type=log.metadata_type,
            status=log.status.value,
            fields_updated=log.fields_updated,
            error_message=log.error_message,
            preview_url=log.preview_url,
            processing_time_ms=log.processing_time_ms,
            created_at=log.created_at,
        )


class HistoryResponse(_CamelModel):
    items: list[EnrichmentLogResponse]
    total: int
    skip: int
    take: int


class ValidateApiKeyRequest(_CamelModel):
    service: str = Field(..., description="Provider name, e.g. 'lastfm' or 'fanart'")
    api_key: str = Field(default="", description="Key to check (format only)")


class ValidateApiKeyResponse(_CamelModel):
    valid: bool
    message: str = ""


class UpdateSettingRequest(_CamelModel):
    key: str = Field(..., description="metadata.* setting key")
    value: Any = None
