"""Domain entities."""

from echometa.domain.entities.conflict import (
    ConflictAction,
    ConflictFilters,
    ConflictStatus,
    EnrichmentLog,
    EnrichmentLogStatus,
    HistoryFilters,
    MetadataConflict,
    conflict_priority,
)
from echometa.domain.entities.enrichment import (
    ALBUM_FIELDS,
    ARTIST_FIELDS,
    IMAGE_FIELDS,
    PROVIDER_PRIORITY,
    TRUSTED_PROVIDERS,
    AutoSearchSettings,
    EnrichmentConfig,
    EnrichmentRun,
    EnrichmentTarget,
    EntityType,
    MetadataField,
    ProviderConfig,
    ProviderName,
    ProviderResult,
    ProviderSearchResult,
    RunPhase,
    RunStatus,
    SearchCandidate,
    fields_for,
    metadata_type_for,
    new_id,
    utc_now,
)

__all__ = [
    "ALBUM_FIELDS",
    "ARTIST_FIELDS",
    "IMAGE_FIELDS",
    "PROVIDER_PRIORITY",
    "TRUSTED_PROVIDERS",
    "AutoSearchSettings",
    "ConflictAction",
    "ConflictFilters",
    "ConflictStatus",
    "EnrichmentConfig",
    "EnrichmentLog",
    "EnrichmentLogStatus",
    "EnrichmentRun",
    "EnrichmentTarget",
    "EntityType",
    "HistoryFilters",
    "MetadataConflict",
    "MetadataField",
    "ProviderConfig",
    "ProviderName",
    "ProviderResult",
    "ProviderSearchResult",
    "RunPhase",
    "RunStatus",
    "SearchCandidate",
    "conflict_priority",
    "fields_for",
    "metadata_type_for",
    "new_id",
    "utc_now",
]
