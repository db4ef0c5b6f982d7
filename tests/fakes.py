"""Scripted stand-ins for providers and image plumbing used across the test suite."""

from collections.abc import Callable
from io import BytesIO
from typing import Any

import httpx
from PIL import Image

from echometa.domain.entities import (
    AutoSearchSettings,
    EnrichmentConfig,
    EnrichmentTarget,
    EntityType,
    MetadataField,
    ProviderConfig,
    ProviderName,
    ProviderResult,
    ProviderSearchResult,
    SearchCandidate,
)
from echometa.domain.exceptions import ExternalApiError
from echometa.domain.ports import (
    DownloadedImage,
    IImageDownloader,
    IImageStore,
    IMetadataProvider,
)
from echometa.infrastructure.integrations.external_api_client import ExternalApiClient
from echometa.infrastructure.rate_limiter import RateLimiter, RateLimiterConfig


def make_image_bytes(fmt: str = "PNG", size: tuple[int, int] = (64, 64)) -> bytes:
    """Generate a real, decodable image with Pillow."""
    buffer = BytesIO()
    Image.new("RGB", size, color=(200, 40, 40)).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeProvider(IMetadataProvider):
    """Scripted provider: returns whatever the test put in `result`/`search_result`."""

    def __init__(
        self,
        name: ProviderName,
        result: ProviderResult | None = None,
        search_result: ProviderSearchResult | None = None,
    ) -> None:
        self.name = name
        self.result = result or ProviderResult.ok(name, {})
        self.search_result = search_result or ProviderSearchResult.ok(name, [])
        self.fetch_calls: list[tuple[EnrichmentTarget, str | None]] = []
        self.search_calls: list[tuple[EntityType, str, str | None]] = []
        self.results_queue: list[ProviderResult] = []

    async def search_by_name(
        self, entity_type: EntityType, name: str, artist_hint: str | None = None
    ) -> ProviderSearchResult:
        self.search_calls.append((entity_type, name, artist_hint))
        return self.search_result

    async def fetch_by_id(
        self, entity_type: EntityType, external_id: str, api_key: str | None = None
    ) -> ProviderResult:
        return self.result

    async def fetch(
        self, target: EnrichmentTarget, api_key: str | None = None
    ) -> ProviderResult:
        self.fetch_calls.append((target, api_key))
        if self.results_queue:
            return self.results_queue.pop(0)
        # Fresh copy per call, the orchestrator stamps run_id on it
        return ProviderResult(
            provider=self.result.provider,
            fields=dict(self.result.fields),
            error=self.result.error,
            skipped=self.result.skipped,
            fetched_by_id=self.result.fetched_by_id,
            confidence=self.result.confidence,
        )


def ok_result(
    provider: ProviderName, fetched_by_id: bool = True, **fields: Any
) -> ProviderResult:
    return ProviderResult.ok(
        provider,
        {MetadataField(name): value for name, value in fields.items()},
        fetched_by_id=fetched_by_id,
    )


def failed_result(provider: ProviderName, status: int = 500) -> ProviderResult:
    return ProviderResult.failure(
        provider,
        ExternalApiError(provider.value, f"HTTP {status}", http_status=status),
    )


def candidate(mbid: str, name: str, artist_name: str | None = None) -> SearchCandidate:
    return SearchCandidate(external_id=mbid, name=name, artist_name=artist_name)


class FakeImageDownloader(IImageDownloader):
    """Serves a valid PNG for every URL unless the test registered something else."""

    def __init__(self, default_content: bytes) -> None:
        self.default_content = default_content
        self.responses: dict[str, DownloadedImage] = {}
        self.calls: list[tuple[ProviderName, str]] = []

    async def download(self, provider: ProviderName, url: str) -> DownloadedImage:
        self.calls.append((provider, url))
        if url in self.responses:
            return self.responses[url]
        return DownloadedImage(url=url, content=self.default_content, content_type="image/png")


class FakeImageStore(IImageStore):
    def __init__(self) -> None:
        self.saved: dict[str, bytes] = {}

    async def save(
        self,
        entity_type: EntityType,
        entity_id: str,
        metadata_field: MetadataField,
        content: bytes,
        mime_type: str,
    ) -> str:
        path = f"{entity_type.value}s/{entity_id}/{metadata_field.value}.png"
        self.saved[path] = content
        return path


def make_config(
    threshold: float = 0.85,
    auto_apply: bool = True,
    auto_search: bool = True,
    auto_enrich: bool = False,
    retries: int = 1,
    disabled: tuple[ProviderName, ...] = (),
    timeout: float = 10.0,
) -> EnrichmentConfig:
    """All four providers enabled (with dummy keys) unless listed in `disabled`."""
    keys = {ProviderName.LASTFM: "k" * 32, ProviderName.FANART: "fanart-key-123"}
    return EnrichmentConfig(
        auto_search=AutoSearchSettings(
            enabled=auto_search, confidence_threshold=threshold, auto_apply=auto_apply
        ),
        auto_enrich_enabled=auto_enrich,
        providers={
            name: ProviderConfig(enabled=name not in disabled, api_key=keys.get(name))
            for name in ProviderName
        },
        provider_retry_attempts=retries,
        provider_timeout=timeout,
    )


def fast_limiter(name: str = "test") -> RateLimiter:
    """A limiter that never makes a test wait."""
    return RateLimiter(
        config=RateLimiterConfig(
            max_tokens=1000,
            refill_rate=1000.0,
            max_backoff_seconds=1.0,
            initial_backoff_seconds=0.01,
        ),
        name=name,
    )


def make_api_client(
    handler: Callable[[httpx.Request], Any],
    default_timeout: float = 5.0,
    max_concurrent_per_provider: int = 2,
) -> ExternalApiClient:
    """ExternalApiClient over httpx.MockTransport with per-test limiters."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ExternalApiClient(
        client,
        default_timeout=default_timeout,
        max_concurrent_per_provider=max_concurrent_per_provider,
        limiters={name.value: fast_limiter(name.value) for name in ProviderName},
    )
