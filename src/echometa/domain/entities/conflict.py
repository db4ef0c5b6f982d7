"""Metadata conflict and enrichment log entities."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from echometa.domain.entities.enrichment import (
    EntityType,
    MetadataField,
    ProviderName,
    new_id,
    utc_now,
)


class ConflictStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    IGNORED = "ignored"

    @property
    def is_terminal(self) -> bool:
        return self is not ConflictStatus.PENDING


class ConflictAction(str, Enum):
    """Human resolution of a pending conflict."""

    ACCEPT = "accept"
    REJECT = "reject"
    IGNORE = "ignore"

    @property
    def target_status(self) -> ConflictStatus:
        return {
            ConflictAction.ACCEPT: ConflictStatus.ACCEPTED,
            ConflictAction.REJECT: ConflictStatus.REJECTED,
            ConflictAction.IGNORE: ConflictStatus.IGNORED,
        }[self]


def conflict_priority(metadata_field: MetadataField) -> int:
    """Listing priority, lower first: identifiers, then images, then bios."""
    if metadata_field is MetadataField.MBID:
        return 1
    if metadata_field.is_image:
        return 2
    if metadata_field is MetadataField.BIO:
        return 3
    return 4


# Yo, this is a DOMAIN entity, not the DB model! proposed_value/previous_value are whatever
# the field holds: a string for mbid/bio/image URLs, a list of strings for tags. The
# repository stores them as JSON so both shapes round-trip unchanged.
@dataclass
class MetadataConflict:
    """A provider proposal waiting for a human decision."""

    entity_type: EntityType
    entity_id: str
    entity_name: str
    provider: ProviderName
    field: MetadataField
    proposed_value: Any
    previous_value: Any = None
    confidence: float | None = None
    status: ConflictStatus = ConflictStatus.PENDING
    priority: int = 4
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)
    resolved_at: datetime | None = None
    resolved_by: str | None = None

    @classmethod
    def propose(
        cls,
        entity_type: EntityType,
        entity_id: str,
        entity_name: str,
        provider: ProviderName,
        metadata_field: MetadataField,
        proposed_value: Any,
        previous_value: Any = None,
        confidence: float | None = None,
    ) -> "MetadataConflict":
        return cls(
            entity_type=entity_type,
            entity_id=entity_id,
            entity_name=entity_name,
            provider=provider,
            field=metadata_field,
            proposed_value=proposed_value,
            previous_value=previous_value,
            confidence=confidence,
            priority=conflict_priority(metadata_field),
        )

    @property
    def is_pending(self) -> bool:
        return self.status is ConflictStatus.PENDING

    @property
    def preview_url(self) -> str | None:
        if self.field.is_image and isinstance(self.proposed_value, str):
            return self.proposed_value
        return None


class EnrichmentLogStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


@dataclass
class EnrichmentLog:
    """Append-only audit row, one per provider attempt per run."""

    entity_id: str
    entity_type: EntityType
    entity_name: str
    provider: ProviderName
    metadata_type: str
    status: EnrichmentLogStatus
    fields_updated: list[str] = field(default_factory=list)
    error_message: str | None = None
    preview_url: str | None = None
    processing_time_ms: int = 0
    run_id: str | None = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class ConflictFilters:
    entity_type: EntityType | None = None
    provider: ProviderName | None = None
    status: ConflictStatus | None = ConflictStatus.PENDING
    entity_id: str | None = None
    skip: int = 0
    take: int = 50


@dataclass
class HistoryFilters:
    entity_type: EntityType | None = None
    provider: ProviderName | None = None
    status: EnrichmentLogStatus | None = None
    entity_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    skip: int = 0
    take: int = 50
