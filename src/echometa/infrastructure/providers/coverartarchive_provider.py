"""Cover Art Archive metadata provider (album covers only)."""

from echometa.domain.entities import (
    EnrichmentTarget,
    EntityType,
    MetadataField,
    ProviderName,
    ProviderResult,
)
from echometa.infrastructure.integrations.coverartarchive_client import (
    CoverArtArchiveClient,
    parse_images,
)
from echometa.infrastructure.providers.base import BaseMetadataProvider


class CoverArtArchiveProvider(BaseMetadataProvider):
    """Front cover of a release group.

    Treated as MusicBrainz-tier: it is keyed by an already verified MBID.
    """

    name = ProviderName.COVERARTARCHIVE

    def __init__(self, client: CoverArtArchiveClient) -> None:
        self._client = client

    async def fetch_by_id(
        self, entity_type: EntityType, external_id: str, api_key: str | None = None
    ) -> ProviderResult:
        if entity_type is not EntityType.ALBUM:
            return ProviderResult.skip(self.name)

        result = await self._client.get_release_group_artwork(external_id)
        if not result.is_ok:
            return ProviderResult.failure(self.name, self._error(result))

        images = parse_images(result.data)
        front = next((image for image in images if image.is_front), None)
        fields = {MetadataField.COVER_IMAGE: front.best_url} if front else {}
        return self._ok(entity_type, fields)

    async def fetch(
        self, target: EnrichmentTarget, api_key: str | None = None
    ) -> ProviderResult:
        if target.entity_type is not EntityType.ALBUM or not target.mbid:
            return ProviderResult.skip(self.name)
        return await self.fetch_by_id(target.entity_type, target.mbid)
