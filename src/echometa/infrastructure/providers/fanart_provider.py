"""Fanart.tv metadata provider (artist thumbs/backgrounds, album covers)."""

from typing import Any

from echometa.domain.entities import (
    EnrichmentTarget,
    EntityType,
    MetadataField,
    ProviderName,
    ProviderResult,
)
from echometa.domain.exceptions import ExternalApiError
from echometa.infrastructure.integrations.fanart_client import FanartClient, best_image_url
from echometa.infrastructure.providers.base import BaseMetadataProvider


class FanartProvider(BaseMetadataProvider):
    """Fanart.tv images. Needs an MBID, otherwise the provider is skipped."""

    name = ProviderName.FANART

    def __init__(self, client: FanartClient) -> None:
        self._client = client

    def _parse(self, entity_type: EntityType, mbid: str, data: Any) -> ProviderResult:
        if not isinstance(data, dict):
            return self._ok(entity_type, {})

        if entity_type is EntityType.ARTIST:
            return self._ok(
                entity_type,
                {
                    MetadataField.PROFILE_IMAGE: best_image_url(data.get("artistthumb")),
                    MetadataField.BACKGROUND_IMAGE: best_image_url(
                        data.get("artistbackground")
                    ),
                },
            )

        albums = data.get("albums") if isinstance(data.get("albums"), dict) else {}
        album = albums.get(mbid) or {}
        return self._ok(
            entity_type,
            {MetadataField.COVER_IMAGE: best_image_url(album.get("albumcover"))},
        )

    async def fetch_by_id(
        self, entity_type: EntityType, external_id: str, api_key: str | None = None
    ) -> ProviderResult:
        if not api_key:
            return ProviderResult.failure(
                self.name,
                ExternalApiError(
                    provider=self.name.value, message="Fanart.tv API key not configured"
                ),
            )
        if entity_type is EntityType.ARTIST:
            result = await self._client.get_artist_images(external_id, api_key)
        else:
            result = await self._client.get_album_images(external_id, api_key)

        if not result.is_ok:
            return ProviderResult.failure(self.name, self._error(result))
        return self._parse(entity_type, external_id, result.data)

    async def fetch(
        self, target: EnrichmentTarget, api_key: str | None = None
    ) -> ProviderResult:
        if not target.mbid:
            return ProviderResult.skip(self.name)
        return await self.fetch_by_id(target.entity_type, target.mbid, api_key)
