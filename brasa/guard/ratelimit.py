"""
Fixed-window rate limiting on the queue store.
"""

import time
from dataclasses import dataclass

from brasa.store.base import KeyValueStore


class RateLimitError(Exception):
    """Raised when a caller exceeds its request budget for the current window."""

    def __init__(self, message: str = "Too many requests", retry_after: int = 60):
        super().__init__(message)
        self.retry_after = retry_after


@dataclass
class RateLimitResult:
    success: bool
    remaining: int
    reset_at: int  # epoch ms


async def assert_rate_limit(
    store: KeyValueStore,
    key: str,
    limit: int,
    window_seconds: int = 60,
) -> RateLimitResult:
    """
    Count a hit against `key` and raise once the window's limit is exceeded.

    The first hit in a window starts its TTL; the counter resets when the key
    expires.
    """
    redis_key = f"rate:{key}"
    current = await store.incr(redis_key)

    if current == 1:
        await store.expire(redis_key, window_seconds)

    reset_at = int(time.time() * 1000) + window_seconds * 1000

    if current > limit:
        raise RateLimitError(
            f"Rate limit exceeded. Try again in {window_seconds} seconds.",
            retry_after=window_seconds,
        )

    return RateLimitResult(success=True, remaining=limit - current, reset_at=reset_at)
