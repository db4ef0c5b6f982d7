"""External service integrations."""

from echometa.infrastructure.integrations.coverartarchive_client import (
    CoverArtArchiveClient,
)
from echometa.infrastructure.integrations.external_api_client import (
    ApiRequest,
    ApiResponse,
    ApiResult,
    ExternalApiClient,
    ResponseKind,
)
from echometa.infrastructure.integrations.fanart_client import FanartClient
from echometa.infrastructure.integrations.http_pool import HttpClientPool
from echometa.infrastructure.integrations.image_downloader import ApiImageDownloader
from echometa.infrastructure.integrations.lastfm_client import LastfmClient
from echometa.infrastructure.integrations.musicbrainz_client import MusicBrainzClient

__all__ = [
    "ApiImageDownloader",
    "ApiRequest",
    "ApiResponse",
    "ApiResult",
    "CoverArtArchiveClient",
    "ExternalApiClient",
    "FanartClient",
    "HttpClientPool",
    "LastfmClient",
    "MusicBrainzClient",
    "ResponseKind",
]
