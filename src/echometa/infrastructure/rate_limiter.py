"""
Centralized Rate Limiter for External API Calls.

Hey future me - this is the ONE rate limiter every metadata provider goes through!
Token bucket with adaptive backoff.

WHY CENTRAL?
- MusicBrainz bans clients that go above 1 req/sec
- Last.fm, Fanart.tv and Cover Art Archive are more lenient but still throttle
- One limiter per provider, shared by every run, so parallel runs can't add up

ALGORITHM: Token Bucket
- Bucket holds max_tokens
- Tokens refill at refill_rate/sec
- Each request consumes 1 token
- Empty bucket: wait until a token is there (waiting, never failing)

ADAPTIVE BACKOFF on 429:
- First 429: initial_backoff_seconds
- Each further 429 doubles it (capped)
- Retry-After from the server always wins
- First success resets it

USAGE:
    limiter = get_rate_limiter("musicbrainz")

    async with limiter:
        response = await client.get(url)

    # On 429:
    await limiter.handle_rate_limit_response(retry_after)
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class RateLimiterConfig:
    """Configuration for rate limiter.

    Hey future me - defaults match the lenient providers (5 req/sec, small burst).
    MusicBrainz gets its own strict config via RateLimiter.for_musicbrainz().
    """

    max_tokens: int = 5  # Bucket size
    refill_rate: float = 5.0  # Tokens per second
    max_backoff_seconds: float = 60.0
    initial_backoff_seconds: float = 1.0  # First 429 wait
    backoff_multiplier: float = 2.0  # Exponential backoff factor


@dataclass
class RateLimiter:
    """Token Bucket Rate Limiter with adaptive backoff.

    Use it as async context manager for automatic token handling.

    Attributes:
        config: Rate limiter configuration
        _tokens: Current available tokens
        _last_refill: Last time tokens were refilled
        _current_backoff: Current backoff delay (resets on success)
        _lock: Async lock guarding the bucket
    """

    config: RateLimiterConfig = field(default_factory=RateLimiterConfig)
    name: str = "default"

    # Internal state (not in __init__ signature)
    _tokens: float = field(default=0.0, init=False)
    _last_refill: float = field(default_factory=time.monotonic, init=False)
    _current_backoff: float = field(default=0.0, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    def __post_init__(self) -> None:
        """Initialize tokens to max capacity."""
        self._tokens = float(self.config.max_tokens)
        self._current_backoff = self.config.initial_backoff_seconds

    @classmethod
    def for_musicbrainz(cls) -> "RateLimiter":
        """Create rate limiter for MusicBrainz API.

        Hey future me - MusicBrainz is STRICT: 1 req/sec, no bursts!
        They IP-ban aggressive clients, so the backoff is long too.
        """
        return cls(
            config=RateLimiterConfig(
                max_tokens=1,  # No burst!
                refill_rate=1.0,  # Exactly 1 req/sec
                max_backoff_seconds=120.0,
                initial_backoff_seconds=2.0,
            ),
            name="musicbrainz",
        )

    @classmethod
    def for_public_api(cls, name: str, requests_per_second: float = 5.0) -> "RateLimiter":
        """Create rate limiter for Last.fm, Fanart.tv or Cover Art Archive."""
        return cls(
            config=RateLimiterConfig(
                max_tokens=max(1, int(requests_per_second)),
                refill_rate=requests_per_second,
                max_backoff_seconds=60.0,
                initial_backoff_seconds=1.0,
            ),
            name=name,
        )

    def _refill_tokens(self) -> None:
        """Add the tokens accumulated since the last refill."""
        now = time.monotonic()
        elapsed = now - self._last_refill

        new_tokens = elapsed * self.config.refill_rate
        self._tokens = min(self.config.max_tokens, self._tokens + new_tokens)
        self._last_refill = now

    async def acquire(self) -> None:
        """Acquire one token, waiting if necessary."""
        async with self._lock:
            self._refill_tokens()

            while self._tokens < 1.0:
                wait_time = (1.0 - self._tokens) / self.config.refill_rate
                logger.debug(
                    "RateLimiter[%s]: No tokens available, waiting %.2fs",
                    self.name,
                    wait_time,
                )
                # Still holding the lock: later callers queue up behind us in order
                await asyncio.sleep(wait_time)
                self._refill_tokens()

            self._tokens -= 1.0

    async def handle_rate_limit_response(self, retry_after: float | None = None) -> float:
        """Handle a 429 rate limit response with adaptive backoff.

        Args:
            retry_after: Retry-After header from API response (seconds)

        Returns:
            The actual wait time used
        """
        async with self._lock:
            wait_time = float(retry_after) if retry_after is not None else self._current_backoff
            wait_time = min(wait_time, self.config.max_backoff_seconds)

            logger.warning(
                "RateLimiter[%s]: 429 Rate Limited! Waiting %.1fs before retry "
                "(backoff level: %.1fs)",
                self.name,
                wait_time,
                self._current_backoff,
            )

            self._current_backoff = min(
                self._current_backoff * self.config.backoff_multiplier,
                self.config.max_backoff_seconds,
            )
            # Clear tokens (force wait)
            self._tokens = 0.0

        # Wait outside lock
        await asyncio.sleep(wait_time)
        return wait_time

    def reset_backoff(self) -> None:
        """Reset backoff after a successful request."""
        self._current_backoff = self.config.initial_backoff_seconds

    async def __aenter__(self) -> "RateLimiter":
        await self.acquire()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object
    ) -> None:
        if exc_type is None:
            self.reset_backoff()

    @property
    def current_backoff(self) -> float:
        return self._current_backoff

    @property
    def available_tokens(self) -> float:
        """Get current available tokens (for debugging)."""
        self._refill_tokens()
        return self._tokens


# Module-level rate limiters (singleton pattern)
# Hey future me - one limiter per provider, shared by every ExternalApiClient in the
# process. Tests build their own limiters and pass them in instead.
_limiters: dict[str, RateLimiter] = {}


def create_rate_limiter(provider: str) -> RateLimiter:
    if provider == "musicbrainz":
        return RateLimiter.for_musicbrainz()
    return RateLimiter.for_public_api(provider)


def get_rate_limiter(provider: str) -> RateLimiter:
    """Get the singleton limiter for a provider."""
    limiter = _limiters.get(provider)
    if limiter is None:
        limiter = create_rate_limiter(provider)
        _limiters[provider] = limiter
    return limiter


__all__ = [
    "RateLimiter",
    "RateLimiterConfig",
    "create_rate_limiter",
    "get_rate_limiter",
]
