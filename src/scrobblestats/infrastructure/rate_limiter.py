"""
Request pacing for Last.fm and Spotify.

Hey future me - one RateLimiter per upstream API, created by the client that uses it. No
module-level instances: a session builds its clients, each client builds its limiter.

Token bucket, "reserve then sleep" flavour:
- the bucket holds up to `burst` tokens and refills at `per_second`
- acquire() takes a token immediately, the balance may go negative
- a negative balance means "you're in the queue", the caller sleeps off its own debt
  outside the lock, so ten concurrent callers get evenly spaced slots

On a 429 the client calls backoff(retry_after). Without Retry-After we wait
backoff_start, then backoff_start * backoff_factor, ... up to backoff_cap. The next
non-429 answer resets the penalty (the client calls reset_backoff(); the limiter can't
see status codes).

USAGE:
    limiter = RateLimiter.for_lastfm()
    async with limiter:
        response = await client.get(...)
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitPolicy:
    """Bucket size, refill speed and 429 backoff curve."""

    burst: int = 10
    per_second: float = 2.0
    backoff_start: float = 1.0
    backoff_factor: float = 2.0
    # Spotify sends Retry-After of several minutes when it's really angry
    backoff_cap: float = 600.0


# Spotify doesn't publish numbers; ~180 req/min in practice. 2/s sustained is safe.
SPOTIFY_POLICY = RateLimitPolicy(burst=10, per_second=2.0, backoff_cap=600.0)
# Last.fm: 5 req/s per API key, averaged over 5 minutes.
LASTFM_POLICY = RateLimitPolicy(burst=10, per_second=5.0, backoff_cap=60.0)


class RateLimiter:
    """Token bucket with adaptive 429 backoff."""

    def __init__(self, policy: RateLimitPolicy = SPOTIFY_POLICY, name: str = "default") -> None:
        self.policy = policy
        self.name = name
        self._balance = float(policy.burst)
        self._stamp = time.monotonic()
        self._penalty = policy.backoff_start
        self._lock = asyncio.Lock()

    @classmethod
    def for_spotify(cls) -> "RateLimiter":
        return cls(SPOTIFY_POLICY, name="spotify")

    @classmethod
    def for_lastfm(cls) -> "RateLimiter":
        return cls(LASTFM_POLICY, name="lastfm")

    def _top_up(self) -> None:
        now = time.monotonic()
        self._balance = min(
            float(self.policy.burst),
            self._balance + (now - self._stamp) * self.policy.per_second,
        )
        self._stamp = now

    async def acquire(self) -> None:
        """Take one token, sleeping if the bucket is in debt."""
        async with self._lock:
            self._top_up()
            self._balance -= 1.0
            debt = -self._balance

        if debt > 0:
            wait = debt / self.policy.per_second
            logger.debug("RateLimiter[%s]: bucket empty, waiting %.2fs", self.name, wait)
            await asyncio.sleep(wait)

    async def backoff(self, retry_after: int | None = None) -> float:
        """Sleep after a 429 and grow the penalty for the next one.

        Args:
            retry_after: Seconds from the Retry-After header, if any

        Returns:
            Seconds actually waited
        """
        async with self._lock:
            wait = float(retry_after) if retry_after is not None else self._penalty
            wait = min(wait, self.policy.backoff_cap)
            logger.warning(
                "RateLimiter[%s]: got 429, backing off %.1fs (penalty level %.1fs)",
                self.name,
                wait,
                self._penalty,
            )
            self._penalty = min(
                self._penalty * self.policy.backoff_factor, self.policy.backoff_cap
            )
            # Nobody else gets a free token while we're being throttled
            self._balance = 0.0
            self._stamp = time.monotonic()

        await asyncio.sleep(wait)
        return wait

    def reset_backoff(self) -> None:
        self._penalty = self.policy.backoff_start

    @property
    def current_backoff(self) -> float:
        """Wait the next 429 without Retry-After would cause."""
        return self._penalty

    @property
    def available_tokens(self) -> float:
        """Tokens in the bucket right now (negative = queued callers)."""
        self._top_up()
        return self._balance

    async def __aenter__(self) -> "RateLimiter":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Any, exc_tb: Any) -> None:
        return None


__all__ = ["LASTFM_POLICY", "SPOTIFY_POLICY", "RateLimitPolicy", "RateLimiter"]
