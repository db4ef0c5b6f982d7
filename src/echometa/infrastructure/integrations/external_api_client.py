"""Uniform outbound HTTP invocation for every metadata provider.

Hey future me - EVERY provider request goes through invoke(). It does four things and
nothing else:

1. waits at the provider's gate (semaphore + token bucket) - waiting, never failing
2. time-boxes the network call (default 10s) with asyncio.wait_for
3. classifies the outcome into an ApiResult (ok / ExternalApiError / OperationTimeoutError)
4. never lets an httpx exception escape

NO retries here! Retry policy lives in the orchestrator so a failing provider stays
visible per provider in the enrichment log. The only thing we do on 429 is engage the
limiter's adaptive backoff, so the orchestrator's retry lands after the server's
Retry-After instead of hammering it.

404 is NOT an error: it is "this provider has nothing for that id", returned as ok
with data=None.

CancelledError is never caught - cancelling a run cancels its in-flight requests.
"""

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from echometa.domain.exceptions import (
    EnrichmentError,
    ExternalApiError,
    OperationTimeoutError,
)
from echometa.infrastructure.observability.log_messages import LogMessages
from echometa.infrastructure.observability.logger_template import log_slow_operation
from echometa.infrastructure.rate_limiter import RateLimiter, get_rate_limiter

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

# Requests slower than this get an operation.slow warning
SLOW_REQUEST_MS = 5000


class ResponseKind(str, Enum):
    JSON = "json"
    BYTES = "bytes"


@dataclass(frozen=True)
class ApiRequest:
    """Provider-agnostic description of one HTTP call."""

    url: str
    params: Mapping[str, Any] | None = None
    headers: Mapping[str, str] | None = None
    method: str = "GET"
    expect: ResponseKind = ResponseKind.JSON
    operation: str = "request"


@dataclass
class ApiResponse:
    status_code: int
    url: str
    data: Any = None
    content: bytes = b""
    content_type: str | None = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


@dataclass
class ApiResult:
    """Tagged result of invoke(): exactly one of response / error is set."""

    provider: str
    response: ApiResponse | None = None
    error: EnrichmentError | None = None

    @classmethod
    def ok(cls, provider: str, response: ApiResponse) -> "ApiResult":
        return cls(provider=provider, response=response)

    @classmethod
    def failure(cls, provider: str, error: EnrichmentError) -> "ApiResult":
        return cls(provider=provider, error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @property
    def data(self) -> Any:
        return self.response.data if self.response is not None else None


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        # HTTP-date form; the limiter falls back to its own backoff
        return None


class ExternalApiClient:
    """Gate + timeout + classification around a shared httpx.AsyncClient."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_concurrent_per_provider: int = 2,
        limiters: Mapping[str, RateLimiter] | None = None,
    ) -> None:
        """
        Args:
            client: Shared AsyncClient (HttpClientPool.get_client() in production)
            default_timeout: Time box per call in seconds
            max_concurrent_per_provider: Gate width per provider
            limiters: Per-provider limiters; missing providers use the process singletons
        """
        self._client = client
        self.default_timeout = default_timeout
        self._max_concurrent = max_concurrent_per_provider
        self._limiters: dict[str, RateLimiter] = dict(limiters or {})
        self._gates: dict[str, asyncio.Semaphore] = {}

    def _gate(self, provider: str) -> asyncio.Semaphore:
        gate = self._gates.get(provider)
        if gate is None:
            gate = asyncio.Semaphore(self._max_concurrent)
            self._gates[provider] = gate
        return gate

    def _limiter(self, provider: str) -> RateLimiter:
        limiter = self._limiters.get(provider)
        if limiter is None:
            limiter = get_rate_limiter(provider)
            self._limiters[provider] = limiter
        return limiter

    async def invoke(
        self,
        provider: str,
        request: ApiRequest,
        timeout: float | None = None,
    ) -> ApiResult:
        """Perform one request for a provider and classify the outcome.

        Args:
            provider: Provider label used for gating, limiting and error tagging
            request: What to call
            timeout: Per-call time box in seconds (default_timeout when None)

        Returns:
            ApiResult - never raises for network, status or decode problems
        """
        effective_timeout = timeout if timeout is not None else self.default_timeout
        limiter = self._limiter(provider)

        async with self._gate(provider):
            await limiter.acquire()
            start = time.monotonic()
            try:
                response = await asyncio.wait_for(
                    self._client.request(
                        request.method,
                        request.url,
                        params=dict(request.params) if request.params else None,
                        headers=dict(request.headers) if request.headers else None,
                    ),
                    timeout=effective_timeout,
                )
            except (TimeoutError, httpx.TimeoutException):
                logger.warning(
                    LogMessages.provider_timeout(provider, effective_timeout, request.url)
                )
                return ApiResult.failure(
                    provider,
                    OperationTimeoutError(
                        operation=f"{provider}.{request.operation}",
                        timeout_ms=int(effective_timeout * 1000),
                        provider=provider,
                    ),
                )
            except httpx.HTTPError as e:
                logger.warning(
                    "%s request failed: %s (%s)", provider, type(e).__name__, request.url
                )
                return ApiResult.failure(
                    provider,
                    ExternalApiError(
                        provider=provider,
                        message=f"{provider} request failed: {str(e) or type(e).__name__}",
                        url=request.url,
                    ),
                )

            log_slow_operation(
                logger,
                f"{provider}.{request.operation}",
                int((time.monotonic() - start) * 1000),
                threshold_ms=SLOW_REQUEST_MS,
                provider=provider,
                url=request.url,
            )
            return await self._classify(provider, request, response, limiter)

    async def _classify(
        self,
        provider: str,
        request: ApiRequest,
        response: httpx.Response,
        limiter: RateLimiter,
    ) -> ApiResult:
        status = response.status_code
        url = str(response.url)

        if status == 404:
            limiter.reset_backoff()
            return ApiResult.ok(provider, ApiResponse(status_code=404, url=url))

        if status == 429:
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            await limiter.handle_rate_limit_response(retry_after)
            return ApiResult.failure(
                provider,
                ExternalApiError(
                    provider=provider,
                    message=f"{provider} rate limited the request",
                    http_status=status,
                    http_status_text=response.reason_phrase,
                    url=url,
                    retry_after=retry_after,
                ),
            )

        if not 200 <= status < 300:
            return ApiResult.failure(
                provider,
                ExternalApiError(
                    provider=provider,
                    message=f"{provider} responded {status} {response.reason_phrase}".strip(),
                    http_status=status,
                    http_status_text=response.reason_phrase,
                    url=url,
                ),
            )

        limiter.reset_backoff()
        api_response = ApiResponse(
            status_code=status,
            url=url,
            content=response.content,
            content_type=response.headers.get("Content-Type"),
            headers=dict(response.headers),
        )
        if request.expect is ResponseKind.JSON:
            try:
                api_response.data = response.json()
            except ValueError:
                return ApiResult.failure(
                    provider,
                    ExternalApiError(
                        provider=provider,
                        message=f"{provider} returned a body that is not JSON",
                        http_status=status,
                        http_status_text=response.reason_phrase,
                        url=url,
                    ),
                )
        return ApiResult.ok(provider, api_response)

    async def download(
        self, provider: str, url: str, timeout: float | None = None
    ) -> ApiResult:
        """GET raw bytes (images). Same gate and classification as invoke()."""
        return await self.invoke(
            provider,
            ApiRequest(url=url, expect=ResponseKind.BYTES, operation="download"),
            timeout=timeout,
        )
