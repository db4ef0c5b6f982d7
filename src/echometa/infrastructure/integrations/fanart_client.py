"""Fanart.tv HTTP client implementation.

Hey future me - Fanart.tv only knows MusicBrainz ids. No MBID, no request! The
adapter checks that before calling us.

Response shape (v3 music):
    artist:  {"name": ..., "artistthumb": [{"id", "url", "likes"}], "artistbackground": [...]}
    album:   {"name": ..., "albums": {"<release-group mbid>": {"albumcover": [...], "cdart": [...]}}}
"""

from typing import Any

from echometa.infrastructure.integrations.external_api_client import (
    ApiRequest,
    ApiResult,
    ExternalApiClient,
)

PROVIDER = "fanart"


def best_image_url(images: Any) -> str | None:
    """Most liked image URL of a Fanart.tv image list."""
    if not isinstance(images, list):
        return None

    def likes(image: dict[str, Any]) -> int:
        try:
            return int(image.get("likes", 0))
        except (TypeError, ValueError):
            return 0

    candidates = [img for img in images if isinstance(img, dict) and img.get("url")]
    if not candidates:
        return None
    return str(max(candidates, key=likes)["url"])


class FanartClient:
    """HTTP client for the Fanart.tv v3 music API."""

    API_BASE_URL = "https://webservice.fanart.tv/v3/music"

    def __init__(self, api: ExternalApiClient) -> None:
        self._api = api

    async def get_artist_images(self, artist_mbid: str, api_key: str) -> ApiResult:
        return await self._api.invoke(
            PROVIDER,
            ApiRequest(
                url=f"{self.API_BASE_URL}/{artist_mbid}",
                params={"api_key": api_key},
                operation="artist_images",
            ),
        )

    async def get_album_images(self, release_group_mbid: str, api_key: str) -> ApiResult:
        return await self._api.invoke(
            PROVIDER,
            ApiRequest(
                url=f"{self.API_BASE_URL}/albums/{release_group_mbid}",
                params={"api_key": api_key},
                operation="album_images",
            ),
        )
