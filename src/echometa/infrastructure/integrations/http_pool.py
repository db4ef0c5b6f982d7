"""Shared HTTP client pool for connection reuse across providers.

Hey future me - this is the CENTRAL httpx client! Every provider call goes through
ExternalApiClient, which takes its AsyncClient from here. One client means keep-alive
and connection limits are shared, and there is a single cleanup point at shutdown.

Usage:
    client = await HttpClientPool.get_client(user_agent="echometa/1.0.0 ( me@example.com )")
    ...
    await HttpClientPool.close()  # in the app lifespan
"""

import asyncio
import logging
from typing import ClassVar

import httpx

logger = logging.getLogger(__name__)


class HttpClientPool:
    """Singleton HTTP client pool for connection reuse.

    - Lazy initialization (created on first use)
    - Guarded by an asyncio.Lock
    - Proper cleanup at shutdown
    """

    _client: ClassVar[httpx.AsyncClient | None] = None
    _lock: ClassVar[asyncio.Lock | None] = None

    # If providers start throttling us, LOWER max_connections before touching timeouts.
    DEFAULT_TIMEOUT: ClassVar[float] = 30.0
    DEFAULT_MAX_KEEPALIVE: ClassVar[int] = 10
    DEFAULT_MAX_CONNECTIONS: ClassVar[int] = 20

    @classmethod
    def _ensure_lock(cls) -> asyncio.Lock:
        # asyncio.Lock() wants to live in the loop that uses it, so create it lazily
        if cls._lock is None:
            cls._lock = asyncio.Lock()
        return cls._lock

    @classmethod
    async def get_client(
        cls,
        timeout: float | None = None,
        user_agent: str | None = None,
    ) -> httpx.AsyncClient:
        """Get the shared HTTP client instance.

        Config params only apply on FIRST call; later calls get the same client.

        Args:
            timeout: Transport-level timeout in seconds (default: 30.0). The per-call
                time box lives in ExternalApiClient, this is only the outer bound.
            user_agent: Default User-Agent header
        """
        async with cls._ensure_lock():
            if cls._client is None:
                effective_timeout = timeout or cls.DEFAULT_TIMEOUT
                headers = {"User-Agent": user_agent} if user_agent else {}

                cls._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(effective_timeout),
                    limits=httpx.Limits(
                        max_keepalive_connections=cls.DEFAULT_MAX_KEEPALIVE,
                        max_connections=cls.DEFAULT_MAX_CONNECTIONS,
                    ),
                    headers=headers,
                    # CAA and Last.fm image URLs redirect to their CDNs
                    follow_redirects=True,
                )
                logger.info(
                    "HTTP client pool initialized (timeout=%.1fs, max_conn=%d)",
                    effective_timeout,
                    cls.DEFAULT_MAX_CONNECTIONS,
                )

            return cls._client

    @classmethod
    async def close(cls) -> None:
        """Close the shared client. get_client() creates a fresh one afterwards."""
        async with cls._ensure_lock():
            if cls._client is not None:
                await cls._client.aclose()
                cls._client = None
                logger.info("HTTP client pool closed")
        # The next lifespan may run on another event loop
        cls._lock = None

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._client is not None
