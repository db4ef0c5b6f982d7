"""Tests for the token bucket rate limiter."""

import time

from echometa.infrastructure.rate_limiter import (
    RateLimiter,
    RateLimiterConfig,
    create_rate_limiter,
    get_rate_limiter,
)


class TestTokenBucket:
    async def test_burst_within_bucket_does_not_wait(self) -> None:
        limiter = RateLimiter(config=RateLimiterConfig(max_tokens=3, refill_rate=1.0))

        start = time.monotonic()
        for _ in range(3):
            await limiter.acquire()

        assert time.monotonic() - start < 0.5

    async def test_empty_bucket_waits_for_refill(self) -> None:
        limiter = RateLimiter(config=RateLimiterConfig(max_tokens=1, refill_rate=20.0))

        await limiter.acquire()
        start = time.monotonic()
        await limiter.acquire()

        assert time.monotonic() - start >= 0.04

    async def test_context_manager_resets_backoff(self) -> None:
        limiter = RateLimiter(
            config=RateLimiterConfig(initial_backoff_seconds=0.01, max_tokens=5)
        )
        await limiter.handle_rate_limit_response(retry_after=0)

        async with limiter:
            pass

        assert limiter.current_backoff == 0.01


class TestBackoff:
    async def test_backoff_doubles_and_caps(self) -> None:
        limiter = RateLimiter(
            config=RateLimiterConfig(
                initial_backoff_seconds=0.01, max_backoff_seconds=0.03
            )
        )

        await limiter.handle_rate_limit_response(retry_after=0)
        assert limiter.current_backoff == 0.02
        await limiter.handle_rate_limit_response(retry_after=0)
        assert limiter.current_backoff == 0.03

    async def test_retry_after_wins_and_drains_tokens(self) -> None:
        limiter = RateLimiter(config=RateLimiterConfig(initial_backoff_seconds=5.0))

        waited = await limiter.handle_rate_limit_response(retry_after=0.0)

        assert waited == 0.0
        assert limiter.available_tokens < 1.0

    async def test_without_retry_after_uses_current_backoff(self) -> None:
        limiter = RateLimiter(config=RateLimiterConfig(initial_backoff_seconds=0.01))

        waited = await limiter.handle_rate_limit_response()

        assert waited == 0.01


class TestFactories:
    def test_musicbrainz_is_strict(self) -> None:
        limiter = create_rate_limiter("musicbrainz")

        assert limiter.config.max_tokens == 1
        assert limiter.config.refill_rate == 1.0

    def test_public_api_allows_burst(self) -> None:
        limiter = create_rate_limiter("fanart")

        assert limiter.name == "fanart"
        assert limiter.config.max_tokens == 5

    def test_singleton_per_provider(self) -> None:
        assert get_rate_limiter("lastfm") is get_rate_limiter("lastfm")
        assert get_rate_limiter("lastfm") is not get_rate_limiter("fanart")
