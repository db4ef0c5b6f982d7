"""IImageDownloader backed by ExternalApiClient."""

from echometa.domain.entities import ProviderName
from echometa.domain.exceptions import ExternalApiError
from echometa.domain.ports import DownloadedImage, IImageDownloader
from echometa.infrastructure.integrations.external_api_client import ExternalApiClient


class ApiImageDownloader(IImageDownloader):
    """Downloads images through the provider's gate, rate limiter and timeout."""

    def __init__(self, api: ExternalApiClient, timeout: float | None = None) -> None:
        self._api = api
        self._timeout = timeout

    async def download(self, provider: ProviderName, url: str) -> DownloadedImage:
        result = await self._api.download(provider.value, url, timeout=self._timeout)
        if result.error is not None:
            return DownloadedImage(url=url, error=result.error)

        response = result.response
        assert response is not None
        # 404 is "not found" for JSON lookups; for an image URL it means the fetch failed
        if response.not_found:
            return DownloadedImage(
                url=url,
                error=ExternalApiError(
                    provider=provider.value,
                    message="Image not found",
                    http_status=404,
                    http_status_text="Not Found",
                    url=url,
                ),
            )
        return DownloadedImage(
            url=url, content=response.content, content_type=response.content_type
        )
