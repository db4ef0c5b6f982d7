"""CoverArtArchive HTTP client implementation.

Hey future me - CoverArtArchive (CAA) is THE official artwork source for MusicBrainz.
No API key, free to use, artwork up to 1200x1200.

Key concepts:
- CAA is keyed by MusicBrainz Release IDs or Release Group IDs
- Our album MBIDs are release-group ids, so we use /release-group/{mbid}
- The release-group endpoint answers with the artwork of the "best" release

GOTCHA: Not all releases have artwork! 404 is normal and comes back as an ok result
without data (see ExternalApiClient).
"""

from dataclasses import dataclass
from typing import Any

from echometa.infrastructure.integrations.external_api_client import (
    ApiRequest,
    ApiResult,
    ExternalApiClient,
)

PROVIDER = "coverartarchive"


@dataclass
class CoverArt:
    """Cover art image data from CoverArtArchive.

    original_url is the full-res image (usually 1000x1000 or larger),
    thumbnail_500 is often large enough and a lot lighter.
    """

    image_id: str
    types: list[str]
    original_url: str
    thumbnail_500: str | None = None
    is_front: bool = False

    @property
    def best_url(self) -> str:
        return self.thumbnail_500 or self.original_url


def parse_images(data: Any) -> list[CoverArt]:
    """Turn the CAA JSON document into CoverArt entries (unknown shapes -> [])."""
    if not isinstance(data, dict):
        return []

    images: list[CoverArt] = []
    for img_data in data.get("images") or []:
        if not isinstance(img_data, dict) or not img_data.get("image"):
            continue
        thumbnails = img_data.get("thumbnails") or {}
        types = [str(t) for t in img_data.get("types") or []]
        images.append(
            CoverArt(
                image_id=str(img_data.get("id", "")),
                types=types,
                original_url=str(img_data["image"]),
                thumbnail_500=thumbnails.get("500") or thumbnails.get("large"),
                is_front=bool(img_data.get("front")) or "Front" in types,
            )
        )
    return images


class CoverArtArchiveClient:
    """HTTP client for CoverArtArchive API."""

    API_BASE_URL = "https://coverartarchive.org"

    def __init__(self, api: ExternalApiClient) -> None:
        self._api = api

    async def get_release_group_artwork(self, release_group_mbid: str) -> ApiResult:
        """Get all artwork of a Release Group (album concept)."""
        return await self._api.invoke(
            PROVIDER,
            ApiRequest(
                url=f"{self.API_BASE_URL}/release-group/{release_group_mbid}",
                headers={"Accept": "application/json"},
                operation="release_group_artwork",
            ),
        )
