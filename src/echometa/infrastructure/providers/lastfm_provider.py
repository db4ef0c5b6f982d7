"""Last.fm metadata provider.

Hey future me - Last.fm results are NEVER auto-applied, whatever they look like. Bios are
community wiki text and images are hit-and-miss, so every field ends up as a conflict.
We look up by NAME (Last.fm autocorrects), only artists use the MBID when we have one:
our album MBIDs are release-group ids and Last.fm album mbids are release ids.
"""

import html
import re
from typing import Any

from echometa.domain.entities import (
    EnrichmentTarget,
    EntityType,
    MetadataField,
    ProviderName,
    ProviderResult,
)
from echometa.domain.exceptions import ExternalApiError
from echometa.infrastructure.integrations.lastfm_client import LastfmClient
from echometa.infrastructure.providers.base import BaseMetadataProvider, normalize_tags

# The grey star Last.fm serves when it has no artist image
LASTFM_PLACEHOLDER_HASH = "2a96cbd8b46e442fc41c2b86b821562f"
IMAGE_SIZES = ("mega", "extralarge", "large", "medium", "small")

_TAG_RE = re.compile(r"<[^>]+>")
_READ_MORE_RE = re.compile(r"\s*<a [^>]*>Read more on Last\.fm</a>\.?\s*$", re.IGNORECASE)


def clean_bio(raw: Any) -> str | None:
    """Strip the trailing "Read more" link and any HTML from a Last.fm bio."""
    if not isinstance(raw, str):
        return None
    text = _READ_MORE_RE.sub("", raw)
    text = html.unescape(_TAG_RE.sub("", text)).strip()
    return text or None


def largest_image(images: Any) -> str | None:
    if not isinstance(images, list):
        return None
    by_size = {
        image.get("size"): image.get("#text")
        for image in images
        if isinstance(image, dict) and image.get("#text")
    }
    for size in IMAGE_SIZES:
        url = by_size.get(size)
        if url and LASTFM_PLACEHOLDER_HASH not in url:
            return str(url)
    return None


def _tag_names(data: dict[str, Any]) -> list[str]:
    tags = (data.get("tags") or {}) if isinstance(data.get("tags"), dict) else {}
    entries = tags.get("tag") or []
    if isinstance(entries, dict):  # a single tag comes back as an object
        entries = [entries]
    return normalize_tags(entry.get("name") for entry in entries if isinstance(entry, dict))


class LastfmProvider(BaseMetadataProvider):
    name = ProviderName.LASTFM

    def __init__(self, client: LastfmClient) -> None:
        self._client = client

    def _missing_key(self) -> ProviderResult:
        return ProviderResult.failure(
            self.name,
            ExternalApiError(provider=self.name.value, message="Last.fm API key not configured"),
        )

    def _parse(self, entity_type: EntityType, data: Any, by_id: bool) -> ProviderResult:
        if entity_type is EntityType.ARTIST:
            body = data.get("artist") if isinstance(data, dict) else None
            text_key, image_field = "bio", MetadataField.PROFILE_IMAGE
        else:
            body = data.get("album") if isinstance(data, dict) else None
            text_key, image_field = "wiki", MetadataField.COVER_IMAGE

        if not isinstance(body, dict):
            return self._ok(entity_type, {}, fetched_by_id=by_id)

        text = body.get(text_key) if isinstance(body.get(text_key), dict) else {}
        return self._ok(
            entity_type,
            {
                MetadataField.BIO: clean_bio(text.get("summary") or text.get("content")),
                MetadataField.TAGS: _tag_names(body),
                image_field: largest_image(body.get("image")),
            },
            fetched_by_id=by_id,
        )

    async def fetch_by_id(
        self, entity_type: EntityType, external_id: str, api_key: str | None = None
    ) -> ProviderResult:
        if not api_key:
            return self._missing_key()
        if entity_type is EntityType.ARTIST:
            result = await self._client.get_artist_info("", api_key, mbid=external_id)
        else:
            result = await self._client.get_album_info("", "", api_key, mbid=external_id)
        if not result.is_ok:
            return ProviderResult.failure(self.name, self._error(result))
        return self._parse(entity_type, result.data, by_id=True)

    async def fetch(
        self, target: EnrichmentTarget, api_key: str | None = None
    ) -> ProviderResult:
        if not api_key:
            return self._missing_key()

        if target.entity_type is EntityType.ARTIST:
            result = await self._client.get_artist_info(
                target.name, api_key, mbid=target.mbid
            )
            by_id = target.mbid is not None
        else:
            if not target.artist_name:
                return ProviderResult.skip(self.name)
            result = await self._client.get_album_info(
                target.artist_name, target.name, api_key
            )
            by_id = False

        if not result.is_ok:
            return ProviderResult.failure(self.name, self._error(result))
        return self._parse(target.entity_type, result.data, by_id=by_id)
