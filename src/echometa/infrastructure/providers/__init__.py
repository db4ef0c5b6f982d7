"""Metadata provider adapters."""

from echometa.infrastructure.providers.coverartarchive_provider import (
    CoverArtArchiveProvider,
)
from echometa.infrastructure.providers.fanart_provider import FanartProvider
from echometa.infrastructure.providers.lastfm_provider import LastfmProvider
from echometa.infrastructure.providers.musicbrainz_provider import MusicBrainzProvider
from echometa.infrastructure.providers.registry import (
    MetadataProviderRegistry,
    build_default_registry,
)

__all__ = [
    "CoverArtArchiveProvider",
    "FanartProvider",
    "LastfmProvider",
    "MetadataProviderRegistry",
    "MusicBrainzProvider",
    "build_default_registry",
]
