"""MusicBrainz web service client.

Rate limiting is NOT done here anymore - ExternalApiClient gates every call through
the musicbrainz token bucket (1 req/sec, no burst).
"""

from echometa.config.settings import MusicBrainzSettings
from echometa.infrastructure.integrations.external_api_client import (
    ApiRequest,
    ApiResult,
    ExternalApiClient,
)

PROVIDER = "musicbrainz"


def escape_lucene(value: str) -> str:
    """Escape a value for use inside a quoted Lucene phrase."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


class MusicBrainzClient:
    """Request builder for the MusicBrainz JSON web service."""

    API_BASE_URL = "https://musicbrainz.org/ws/2"

    # Listen future me, MusicBrainz REQUIRES a User-Agent with app name, version AND contact.
    # Without it they answer 403. Format is "AppName/Version ( contact )" with exactly those
    # spaces and parens.
    def __init__(self, api: ExternalApiClient, settings: MusicBrainzSettings) -> None:
        self._api = api
        self.settings = settings

    @property
    def user_agent(self) -> str:
        return (
            f"{self.settings.app_name}/{self.settings.app_version} "
            f"( {self.settings.contact} )"
        )

    def _request(self, path: str, params: dict[str, str | int], operation: str) -> ApiRequest:
        return ApiRequest(
            url=f"{self.API_BASE_URL}{path}",
            params={"fmt": "json", **params},
            headers={"User-Agent": self.user_agent, "Accept": "application/json"},
            operation=operation,
        )

    # Hey future me, MusicBrainz search uses Lucene syntax. The quotes are IMPORTANT for
    # phrase matching - without them "The Beatles" becomes "the OR beatles" and you get
    # garbage. Results come with a 0-100 "score", but that's MB's relevance, not our
    # confidence. The orchestrator re-scores every candidate with ConfidenceScorer.
    async def search_artist(self, name: str, limit: int = 5) -> ApiResult:
        query = f'artist:"{escape_lucene(name)}"'
        return await self._api.invoke(
            PROVIDER,
            self._request("/artist", {"query": query, "limit": limit}, "search_artist"),
        )

    async def search_release_group(
        self, title: str, artist: str | None = None, limit: int = 5
    ) -> ApiResult:
        query = f'releasegroup:"{escape_lucene(title)}"'
        if artist:
            query += f' AND artist:"{escape_lucene(artist)}"'
        return await self._api.invoke(
            PROVIDER,
            self._request(
                "/release-group", {"query": query, "limit": limit}, "search_release_group"
            ),
        )

    async def lookup_artist(self, mbid: str) -> ApiResult:
        return await self._api.invoke(
            PROVIDER,
            self._request(f"/artist/{mbid}", {"inc": "tags+genres"}, "lookup_artist"),
        )

    # Yo, our album MBIDs are RELEASE-GROUP ids (the abstract album), not releases (one
    # pressing). Cover Art Archive and Fanart.tv both key albums by release group too.
    async def lookup_release_group(self, mbid: str) -> ApiResult:
        return await self._api.invoke(
            PROVIDER,
            self._request(
                f"/release-group/{mbid}",
                {"inc": "tags+genres+artist-credits"},
                "lookup_release_group",
            ),
        )
