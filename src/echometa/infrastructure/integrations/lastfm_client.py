"""Last.fm HTTP client implementation."""

from typing import Any

from echometa.domain.exceptions import ExternalApiError
from echometa.infrastructure.integrations.external_api_client import (
    ApiRequest,
    ApiResponse,
    ApiResult,
    ExternalApiClient,
)

PROVIDER = "lastfm"

# Last.fm error codes that arrive with HTTP 200 in the JSON body
LASTFM_NOT_FOUND = 6
LASTFM_INVALID_API_KEY = 10
LASTFM_RATE_LIMITED = 29


class LastfmClient:
    """HTTP client for Last.fm API operations."""

    API_BASE_URL = "https://ws.audioscrobbler.com/2.0/"

    def __init__(self, api: ExternalApiClient) -> None:
        self._api = api

    # Hey future me, Last.fm loves answering HTTP 200 with {"error": 6, "message": ...}.
    # Error 6 is "not found" - same as a 404 for us, so it becomes an ok result without
    # data. Everything else (invalid key, rate limit, ...) is a real ExternalApiError.
    # Error 29 gets http_status=429 so the orchestrator's retry policy treats it like one.
    async def _make_request(
        self, method: str, params: dict[str, Any], api_key: str
    ) -> ApiResult:
        request = ApiRequest(
            url=self.API_BASE_URL,
            params={"method": method, "api_key": api_key, "format": "json", **params},
            operation=method,
        )
        result = await self._api.invoke(PROVIDER, request)
        if not result.is_ok or result.response is None:
            return result

        data = result.response.data
        if isinstance(data, dict) and "error" in data:
            code = data.get("error")
            if code == LASTFM_NOT_FOUND:
                return ApiResult.ok(
                    PROVIDER, ApiResponse(status_code=404, url=result.response.url)
                )
            return ApiResult.failure(
                PROVIDER,
                ExternalApiError(
                    provider=PROVIDER,
                    message=f"Last.fm error {code}: {data.get('message', 'unknown')}",
                    http_status=429 if code == LASTFM_RATE_LIMITED else None,
                    http_status_text=str(data.get("message", "")) or None,
                    url=self.API_BASE_URL,
                ),
            )
        return result

    async def get_artist_info(
        self, artist: str, api_key: str, mbid: str | None = None
    ) -> ApiResult:
        """
        Get artist information (bio, tags, images).

        Args:
            artist: Artist name
            api_key: Last.fm API key
            mbid: Optional MusicBrainz ID (preferred when present)
        """
        params: dict[str, Any] = {"autocorrect": 1}
        if mbid:
            params["mbid"] = mbid
        else:
            params["artist"] = artist
        return await self._make_request("artist.getInfo", params, api_key)

    async def get_album_info(
        self, artist: str, album: str, api_key: str, mbid: str | None = None
    ) -> ApiResult:
        """
        Get album information (wiki, tags, images).

        Args:
            artist: Artist name
            album: Album title
            api_key: Last.fm API key
            mbid: Optional MusicBrainz ID
        """
        params: dict[str, Any] = {"autocorrect": 1}
        if mbid:
            params["mbid"] = mbid
        else:
            params["artist"] = artist
            params["album"] = album
        return await self._make_request("album.getInfo", params, api_key)
