"""
Fixed-window rate limiting for per-user sensitive operations.

Counting is done by the `limits` library (FixedWindowRateLimiter). Storage is
in process memory by default, or in Redis when REDIS_URI is configured so
every worker process sees the same counts.

The limiter is created once in the app lifespan and stored on app.state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from limits import RateLimitItemPerSecond
from limits.aio.storage import MemoryStorage, Storage
from limits.aio.strategies import FixedWindowRateLimiter
from limits.storage import storage_from_string

from shared.datetime_utils import ceil_seconds_until, utcnow
from shared.logging import get_logger

log = get_logger(__name__)

_KEY_NAMESPACE = "ratelimit"


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after_seconds: int
    reset_at: datetime


class RateLimiter:
    """`limit` hits per `window_seconds` for each key."""

    def __init__(self, storage: Optional[Storage] = None) -> None:
        self._storage = storage if storage is not None else MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self._storage)

    async def allow(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        item = RateLimitItemPerSecond(limit, window_seconds, namespace=_KEY_NAMESPACE)
        allowed = await self._strategy.hit(item, key)
        stats = await self._strategy.get_window_stats(item, key)
        reset_at = datetime.fromtimestamp(stats.reset_time, tz=timezone.utc)

        if allowed:
            return RateLimitResult(True, 0, reset_at)
        return RateLimitResult(False, max(1, ceil_seconds_until(reset_at, utcnow())), reset_at)


def create_rate_limiter(redis_uri: Optional[str] = None) -> RateLimiter:
    """Memory-backed limiter, or Redis-backed when *redis_uri* is given."""
    if not redis_uri:
        return RateLimiter(MemoryStorage())
    log.info("rate_limiter_storage", backend="redis")
    return RateLimiter(storage_from_string(f"async+{redis_uri}"))
