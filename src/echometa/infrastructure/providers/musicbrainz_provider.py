"""MusicBrainz metadata provider.

Hey future me - MusicBrainz is the trusted source. It does two jobs:
- search_by_name() feeds the MBID auto-search (candidates only, the orchestrator scores them)
- fetch_by_id() returns tags for an entity we already have an MBID for

No MBID -> fetch() skips. Finding the MBID is the orchestrator's Searching phase, not ours.
"""

from typing import Any

from echometa.domain.entities import (
    EnrichmentTarget,
    EntityType,
    MetadataField,
    ProviderName,
    ProviderResult,
    ProviderSearchResult,
    SearchCandidate,
)
from echometa.infrastructure.integrations.musicbrainz_client import MusicBrainzClient
from echometa.infrastructure.providers.base import BaseMetadataProvider, normalize_tags


def _artist_credit_name(credits: Any) -> str | None:
    if not isinstance(credits, list) or not credits:
        return None
    parts: list[str] = []
    for credit in credits:
        if not isinstance(credit, dict):
            continue
        parts.append(str(credit.get("name") or credit.get("artist", {}).get("name", "")))
        parts.append(str(credit.get("joinphrase", "")))
    name = "".join(parts).strip()
    return name or None


def _tags(data: dict[str, Any]) -> list[str]:
    # Tags and genres both carry vote counts; highest voted first
    entries = [
        entry
        for key in ("genres", "tags")
        for entry in data.get(key) or []
        if isinstance(entry, dict)
    ]
    entries.sort(key=lambda entry: int(entry.get("count") or 0), reverse=True)
    return normalize_tags(entry.get("name") for entry in entries)


class MusicBrainzProvider(BaseMetadataProvider):
    name = ProviderName.MUSICBRAINZ

    def __init__(self, client: MusicBrainzClient) -> None:
        self._client = client

    async def search_by_name(
        self, entity_type: EntityType, name: str, artist_hint: str | None = None
    ) -> ProviderSearchResult:
        if entity_type is EntityType.ARTIST:
            result = await self._client.search_artist(name)
            key = "artists"
        else:
            result = await self._client.search_release_group(name, artist_hint)
            key = "release-groups"

        if not result.is_ok:
            return ProviderSearchResult.failure(self.name, self._error(result))

        data = result.data if isinstance(result.data, dict) else {}
        candidates: list[SearchCandidate] = []
        for item in data.get(key) or []:
            if not isinstance(item, dict) or not item.get("id"):
                continue
            if entity_type is EntityType.ARTIST:
                candidate_name = item.get("name")
                artist_name = None
            else:
                candidate_name = item.get("title")
                artist_name = _artist_credit_name(item.get("artist-credit"))
            if not candidate_name:
                continue
            score = item.get("score")
            candidates.append(
                SearchCandidate(
                    external_id=str(item["id"]),
                    name=str(candidate_name),
                    artist_name=artist_name,
                    score=int(score) if score is not None else None,
                )
            )
        return ProviderSearchResult.ok(self.name, candidates)

    async def fetch_by_id(
        self, entity_type: EntityType, external_id: str, api_key: str | None = None
    ) -> ProviderResult:
        if entity_type is EntityType.ARTIST:
            result = await self._client.lookup_artist(external_id)
        else:
            result = await self._client.lookup_release_group(external_id)

        if not result.is_ok:
            return ProviderResult.failure(self.name, self._error(result))

        data = result.data if isinstance(result.data, dict) else {}
        return self._ok(entity_type, {MetadataField.TAGS: _tags(data)})

    async def fetch(
        self, target: EnrichmentTarget, api_key: str | None = None
    ) -> ProviderResult:
        if not target.mbid:
            return ProviderResult.skip(self.name)
        return await self.fetch_by_id(target.entity_type, target.mbid)
