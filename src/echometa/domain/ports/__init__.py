"""Domain ports (interfaces).

Hey future me - these are the seams the orchestrator depends on. Infrastructure
implements them (SQLAlchemy repositories, httpx adapters, the in-process event bus,
the local image store), tests replace them with mocks.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from echometa.domain.entities import (
    ConflictFilters,
    ConflictStatus,
    EnrichmentLog,
    EnrichmentTarget,
    EntityType,
    HistoryFilters,
    MetadataConflict,
    MetadataField,
    ProviderName,
    ProviderResult,
    ProviderSearchResult,
    utc_now,
)
from echometa.domain.exceptions import EnrichmentError


class IMetadataProvider(ABC):
    """Capability interface for one external metadata source.

    Every method returns a tagged result, never raises for upstream trouble.
    Providers that cannot search return an empty ok result from search_by_name.
    """

    name: ProviderName

    async def search_by_name(
        self, entity_type: EntityType, name: str, artist_hint: str | None = None
    ) -> ProviderSearchResult:
        return ProviderSearchResult.ok(self.name, [])

    @abstractmethod
    async def fetch_by_id(
        self, entity_type: EntityType, external_id: str, api_key: str | None = None
    ) -> ProviderResult:
        """Fetch normalized fields by external identifier (MBID)."""

    @abstractmethod
    async def fetch(
        self, target: EnrichmentTarget, api_key: str | None = None
    ) -> ProviderResult:
        """Fetch normalized fields for a target, choosing id or name lookup.

        Returns a skipped result when the provider has nothing to look up with.
        """


class ILibraryEntityRepository(ABC):
    """Read targets and write field values on library artists/albums."""

    @abstractmethod
    async def get_target(
        self, entity_type: EntityType, entity_id: str
    ) -> EnrichmentTarget | None:
        pass

    @abstractmethod
    async def apply_field(
        self,
        entity_type: EntityType,
        entity_id: str,
        metadata_field: MetadataField,
        value: Any,
        stored_path: str | None = None,
    ) -> None:
        """Write one field. stored_path is where an image field's bytes live."""


class IMetadataConflictRepository(ABC):
    @abstractmethod
    async def upsert_pending(self, conflict: MetadataConflict) -> MetadataConflict:
        """Insert, or supersede the pending row for (entity, field, provider)."""

    @abstractmethod
    async def get(self, conflict_id: str) -> MetadataConflict | None:
        pass

    @abstractmethod
    async def transition(
        self,
        conflict_id: str,
        status: ConflictStatus,
        resolved_by: str | None = None,
    ) -> bool:
        """Compare-and-set pending -> status. False when no longer pending."""

    @abstractmethod
    async def list_conflicts(
        self, filters: ConflictFilters
    ) -> tuple[list[MetadataConflict], int]:
        pass

    @abstractmethod
    async def list_for_entity(
        self, entity_type: EntityType, entity_id: str
    ) -> list[MetadataConflict]:
        pass

    @abstractmethod
    async def is_dismissed(
        self,
        entity_id: str,
        metadata_field: MetadataField,
        provider: ProviderName,
        proposed_value: Any,
    ) -> bool:
        """Was this exact proposal rejected or ignored before?"""


class IEnrichmentLogRepository(ABC):
    @abstractmethod
    async def add(self, log: EnrichmentLog) -> EnrichmentLog:
        pass

    @abstractmethod
    async def list_history(
        self, filters: HistoryFilters
    ) -> tuple[list[EnrichmentLog], int]:
        pass

    @abstractmethod
    async def list_since(self, since: datetime | None) -> list[EnrichmentLog]:
        pass


class IAppSettingsRepository(ABC):
    @abstractmethod
    async def get_all(self, prefix: str = "") -> dict[str, str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str, value_type: str = "string") -> None:
        pass


class IImageStore(ABC):
    """Takes ownership of validated image bytes."""

    @abstractmethod
    async def save(
        self,
        entity_type: EntityType,
        entity_id: str,
        metadata_field: MetadataField,
        content: bytes,
        mime_type: str,
    ) -> str:
        """Persist the image and return its storage location."""


@dataclass
class DownloadedImage:
    """Raw bytes of an image fetch, or the error that prevented it."""

    url: str
    content: bytes = b""
    content_type: str | None = None
    error: EnrichmentError | None = None

    @property
    def is_ok(self) -> bool:
        return self.error is None


class IImageDownloader(ABC):
    """Fetches image bytes through the same gated client as the providers."""

    @abstractmethod
    async def download(self, provider: ProviderName, url: str) -> DownloadedImage:
        """Never raises for upstream trouble; failures come back in .error."""


@dataclass
class EnrichmentEvent:
    """One lifecycle event of a run.

    name is one of enrichment:started|progress|completed|error, payload is the
    camelCase JSON body subscribers receive.
    """

    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)


class IEventPublisher(ABC):
    """Publish/subscribe port for progress events.

    publish() must never block or raise because of a slow or missing subscriber.
    """

    @abstractmethod
    def publish(self, event: EnrichmentEvent) -> None:
        pass

    @abstractmethod
    def subscribe(self) -> AsyncIterator[EnrichmentEvent]:
        pass


# Hey future me - one unit of work == one DB transaction. The orchestrator opens a short one
# per step (load target, apply a field, queue a conflict, write logs) instead of holding a
# session open across slow provider calls.
class IEnrichmentUnitOfWork(Protocol):
    entities: ILibraryEntityRepository
    conflicts: IMetadataConflictRepository
    logs: IEnrichmentLogRepository
    settings: IAppSettingsRepository


UnitOfWorkFactory = Callable[[], AbstractAsyncContextManager[IEnrichmentUnitOfWork]]


__all__ = [
    "DownloadedImage",
    "IImageDownloader",
    "IEnrichmentUnitOfWork",
    "UnitOfWorkFactory",
    "EnrichmentEvent",
    "IAppSettingsRepository",
    "IEnrichmentLogRepository",
    "IEventPublisher",
    "IImageStore",
    "ILibraryEntityRepository",
    "IMetadataConflictRepository",
    "IMetadataProvider",
]
