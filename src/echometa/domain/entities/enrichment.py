"""Enrichment run, provider and configuration entities."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from echometa.domain.exceptions import EnrichmentError


def utc_now() -> datetime:
    """Timezone-aware UTC now. Never use naive datetimes in the domain."""
    return datetime.now(UTC)


def new_id() -> str:
    return str(uuid4())


class EntityType(str, Enum):
    """Library entity kinds that can be enriched."""

    ARTIST = "artist"
    ALBUM = "album"


# Hey future me - the enum VALUES are what ends up in enrichment_logs.provider and
# metadata_conflicts.provider. "fanart" (not "fanarttv") and "coverartarchive" are the
# historical labels, the stats endpoint and the UI filter on exactly these strings.
class ProviderName(str, Enum):
    """External metadata sources."""

    MUSICBRAINZ = "musicbrainz"
    COVERARTARCHIVE = "coverartarchive"
    LASTFM = "lastfm"
    FANART = "fanart"

    @property
    def is_trusted(self) -> bool:
        """MusicBrainz-tier providers may auto-apply; the rest always need a human."""
        return self in TRUSTED_PROVIDERS

    @property
    def requires_api_key(self) -> bool:
        return self in (ProviderName.LASTFM, ProviderName.FANART)


TRUSTED_PROVIDERS: frozenset[ProviderName] = frozenset(
    {ProviderName.MUSICBRAINZ, ProviderName.COVERARTARCHIVE}
)

# Fixed merge order. MusicBrainz-tier first so trusted values land before anything
# that would only be queued.
PROVIDER_PRIORITY: tuple[ProviderName, ...] = (
    ProviderName.MUSICBRAINZ,
    ProviderName.COVERARTARCHIVE,
    ProviderName.LASTFM,
    ProviderName.FANART,
)


class MetadataField(str, Enum):
    """The common field set every adapter normalizes into."""

    MBID = "mbid"
    BIO = "bio"
    TAGS = "tags"
    PROFILE_IMAGE = "profile_image"
    BACKGROUND_IMAGE = "background_image"
    COVER_IMAGE = "cover_image"

    @property
    def is_image(self) -> bool:
        return self in IMAGE_FIELDS

    @property
    def category(self) -> str:
        """Coarse grouping used for EnrichmentLog.metadata_type."""
        if self is MetadataField.MBID:
            return "identifier"
        if self is MetadataField.BIO:
            return "bio"
        if self is MetadataField.TAGS:
            return "tags"
        if self is MetadataField.COVER_IMAGE:
            return "cover"
        return "images"


IMAGE_FIELDS: frozenset[MetadataField] = frozenset(
    {
        MetadataField.PROFILE_IMAGE,
        MetadataField.BACKGROUND_IMAGE,
        MetadataField.COVER_IMAGE,
    }
)

ARTIST_FIELDS: frozenset[MetadataField] = frozenset(
    {
        MetadataField.MBID,
        MetadataField.BIO,
        MetadataField.TAGS,
        MetadataField.PROFILE_IMAGE,
        MetadataField.BACKGROUND_IMAGE,
    }
)

ALBUM_FIELDS: frozenset[MetadataField] = frozenset(
    {
        MetadataField.MBID,
        MetadataField.BIO,
        MetadataField.TAGS,
        MetadataField.COVER_IMAGE,
    }
)


def fields_for(entity_type: EntityType) -> frozenset[MetadataField]:
    """Fields an entity type supports. Anything else is dropped by adapters."""
    return ARTIST_FIELDS if entity_type is EntityType.ARTIST else ALBUM_FIELDS


def metadata_type_for(fields: "list[MetadataField] | set[MetadataField]") -> str:
    """Build the EnrichmentLog.metadata_type label from a set of fields.

    Categories are joined in a stable order ("bio,cover,tags"); an empty
    set yields "none".
    """
    categories = sorted({f.category for f in fields})
    return ",".join(categories) if categories else "none"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class RunPhase(str, Enum):
    """Orchestrator state machine positions."""

    IDLE = "idle"
    SEARCHING = "searching"
    FETCHING = "fetching"
    MERGING = "merging"
    COMPLETED = "completed"
    ERROR = "error"


# Allowed phase transitions. SEARCHING is optional (only when MBID is missing and
# auto-search is on), ERROR is reachable from every non-terminal phase.
_PHASE_TRANSITIONS: dict[RunPhase, frozenset[RunPhase]] = {
    RunPhase.IDLE: frozenset({RunPhase.SEARCHING, RunPhase.FETCHING, RunPhase.ERROR}),
    RunPhase.SEARCHING: frozenset({RunPhase.FETCHING, RunPhase.ERROR}),
    RunPhase.FETCHING: frozenset({RunPhase.MERGING, RunPhase.ERROR}),
    RunPhase.MERGING: frozenset({RunPhase.COMPLETED, RunPhase.ERROR}),
    RunPhase.COMPLETED: frozenset(),
    RunPhase.ERROR: frozenset(),
}


@dataclass
class EnrichmentRun:
    """One end-to-end enrichment attempt for a single entity."""

    entity_type: EntityType
    entity_id: str
    triggered_by: str = "manual"
    id: str = field(default_factory=new_id)
    started_at: datetime = field(default_factory=utc_now)
    finished_at: datetime | None = None
    status: RunStatus = RunStatus.RUNNING
    phase: RunPhase = RunPhase.IDLE

    @property
    def key(self) -> tuple[EntityType, str]:
        return (self.entity_type, self.entity_id)

    @property
    def duration_ms(self) -> int:
        end = self.finished_at or utc_now()
        return int((end - self.started_at).total_seconds() * 1000)

    def advance(self, phase: RunPhase) -> None:
        """Move to the next phase, refusing illegal jumps."""
        if phase not in _PHASE_TRANSITIONS[self.phase]:
            raise ValueError(f"Illegal run transition {self.phase.value} -> {phase.value}")
        self.phase = phase

    def complete(self) -> None:
        self.advance(RunPhase.COMPLETED)
        self.status = RunStatus.COMPLETED
        self.finished_at = utc_now()

    def fail(self) -> None:
        # fail() is also called from cleanup paths where the run may already be done
        if self.phase not in (RunPhase.COMPLETED, RunPhase.ERROR):
            self.phase = RunPhase.ERROR
        self.status = RunStatus.ERROR
        self.finished_at = self.finished_at or utc_now()


@dataclass
class EnrichmentTarget:
    """Snapshot of a library entity as seen by one run.

    values holds the current value of every supported field (None when empty).
    For albums artist_name is the album artist, used for search and scoring.
    """

    entity_type: EntityType
    entity_id: str
    name: str
    artist_name: str | None = None
    values: dict[MetadataField, Any] = field(default_factory=dict)

    @property
    def mbid(self) -> str | None:
        value = self.values.get(MetadataField.MBID)
        return str(value) if value else None

    def current(self, metadata_field: MetadataField) -> Any:
        return self.values.get(metadata_field)


@dataclass
class ProviderResult:
    """Normalized output of one provider call within a run.

    Tagged result: either fields (ok), error (failed) or skipped (provider had
    nothing to work with, e.g. Fanart.tv without an MBID).
    """

    provider: ProviderName
    fields: dict[MetadataField, Any] = field(default_factory=dict)
    run_id: str | None = None
    confidence: float | None = None
    fetched_at: datetime = field(default_factory=utc_now)
    error: EnrichmentError | None = None
    skipped: bool = False
    fetched_by_id: bool = True

    @classmethod
    def ok(
        cls,
        provider: ProviderName,
        fields: Mapping[MetadataField, Any],
        fetched_by_id: bool = True,
        confidence: float | None = None,
    ) -> "ProviderResult":
        return cls(
            provider=provider,
            fields=dict(fields),
            fetched_by_id=fetched_by_id,
            confidence=confidence,
        )

    @classmethod
    def failure(cls, provider: ProviderName, error: EnrichmentError) -> "ProviderResult":
        return cls(provider=provider, error=error)

    @classmethod
    def skip(cls, provider: ProviderName) -> "ProviderResult":
        return cls(provider=provider, skipped=True)

    @property
    def is_ok(self) -> bool:
        return self.error is None and not self.skipped


@dataclass
class SearchCandidate:
    """One MusicBrainz search hit, scored against the local entity."""

    external_id: str
    name: str
    artist_name: str | None = None
    score: int | None = None
    confidence: float = 0.0


@dataclass
class ProviderSearchResult:
    """Tagged result of search_by_name()."""

    provider: ProviderName
    candidates: list[SearchCandidate] = field(default_factory=list)
    error: EnrichmentError | None = None

    @classmethod
    def ok(
        cls, provider: ProviderName, candidates: list[SearchCandidate]
    ) -> "ProviderSearchResult":
        return cls(provider=provider, candidates=candidates)

    @classmethod
    def failure(
        cls, provider: ProviderName, error: EnrichmentError
    ) -> "ProviderSearchResult":
        return cls(provider=provider, error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class AutoSearchSettings:
    """MBID auto-search policy. Read-only to the pipeline."""

    enabled: bool = True
    confidence_threshold: float = 0.85
    auto_apply: bool = True


@dataclass(frozen=True)
class ProviderConfig:
    enabled: bool = True
    api_key: str | None = None


# Hey future me - this is the ONLY configuration the orchestrator sees. It is frozen:
# reconfigure() swaps the whole object, it never mutates one in place, so a run
# that already started keeps the config it started with.
@dataclass(frozen=True)
class EnrichmentConfig:
    """Everything a run needs to know about policy and credentials."""

    auto_search: AutoSearchSettings = field(default_factory=AutoSearchSettings)
    auto_enrich_enabled: bool = False
    providers: Mapping[ProviderName, ProviderConfig] = field(default_factory=dict)
    provider_retry_attempts: int = 1
    # Seconds for one provider call (all of its requests), per attempt
    provider_timeout: float = 10.0

    def provider(self, name: ProviderName) -> ProviderConfig:
        return self.providers.get(name, ProviderConfig())

    def is_enabled(self, name: ProviderName) -> bool:
        """Enabled and, where the provider needs one, holding an API key."""
        config = self.provider(name)
        if not config.enabled:
            return False
        if name.requires_api_key and not config.api_key:
            return False
        return True

    def enabled_providers(self) -> list[ProviderName]:
        return [name for name in PROVIDER_PRIORITY if self.is_enabled(name)]
