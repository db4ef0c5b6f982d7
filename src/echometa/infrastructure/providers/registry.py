"""Metadata provider registry.

Holds one adapter per ProviderName and hands them out in the fixed
priority order, so callers never depend on registration order.
"""

import logging

from echometa.config.settings import MusicBrainzSettings
from echometa.domain.entities import PROVIDER_PRIORITY, ProviderName
from echometa.domain.ports import IMetadataProvider
from echometa.infrastructure.integrations.coverartarchive_client import (
    CoverArtArchiveClient,
)
from echometa.infrastructure.integrations.external_api_client import ExternalApiClient
from echometa.infrastructure.integrations.fanart_client import FanartClient
from echometa.infrastructure.integrations.lastfm_client import LastfmClient
from echometa.infrastructure.integrations.musicbrainz_client import MusicBrainzClient
from echometa.infrastructure.providers.coverartarchive_provider import (
    CoverArtArchiveProvider,
)
from echometa.infrastructure.providers.fanart_provider import FanartProvider
from echometa.infrastructure.providers.lastfm_provider import LastfmProvider
from echometa.infrastructure.providers.musicbrainz_provider import MusicBrainzProvider

logger = logging.getLogger(__name__)


class MetadataProviderRegistry:
    """Registry for metadata provider implementations."""

    def __init__(self, providers: list[IMetadataProvider] | None = None) -> None:
        self._providers: dict[ProviderName, IMetadataProvider] = {}
        for provider in providers or []:
            self.register(provider)

    def register(self, provider: IMetadataProvider) -> None:
        self._providers[provider.name] = provider
        logger.info("Registered metadata provider: %s", provider.name.value)

    def get(self, name: ProviderName) -> IMetadataProvider | None:
        return self._providers.get(name)

    def ordered(self, names: list[ProviderName] | None = None) -> list[IMetadataProvider]:
        """Registered providers in priority order, optionally restricted to names."""
        wanted = set(names) if names is not None else set(self._providers)
        return [
            self._providers[name]
            for name in PROVIDER_PRIORITY
            if name in wanted and name in self._providers
        ]

    def __contains__(self, name: object) -> bool:
        return name in self._providers


def build_default_registry(
    api: ExternalApiClient, musicbrainz: MusicBrainzSettings
) -> MetadataProviderRegistry:
    """Wire the four production adapters onto one ExternalApiClient."""
    return MetadataProviderRegistry(
        [
            MusicBrainzProvider(MusicBrainzClient(api, musicbrainz)),
            CoverArtArchiveProvider(CoverArtArchiveClient(api)),
            LastfmProvider(LastfmClient(api)),
            FanartProvider(FanartClient(api)),
        ]
    )
