"""Fixed-window request limiter for the guest endpoints, built on ``limits``.

Guards the unauthenticated guest endpoints against request floods from a
single client. The per-challenge attempt cap is the brute-force defence; this
limiter only bounds request volume. Counters live in Redis when it is
configured and in process memory otherwise. A failing Redis lets requests
through.
"""

from typing import Optional

from limits import RateLimitItem, parse
from limits.aio.storage import MemoryStorage, Storage
from limits.aio.strategies import FixedWindowRateLimiter
from limits.errors import StorageError
from limits.storage import storage_from_string

from shared.logging import get_logger

log = get_logger(__name__)


class GuestRateLimiter:
    def __init__(self, storage: Storage, limit: str) -> None:
        self.limit: RateLimitItem = parse(limit)
        self._strategy = FixedWindowRateLimiter(storage)

    async def hit(self, key: str) -> bool:
        """Count one request against *key*; False once the window is full."""
        try:
            allowed = await self._strategy.hit(self.limit, key)
        except StorageError as e:
            log.warning("rate_limiter_unavailable", bucket=key, error=str(e))
            return True

        if not allowed:
            log.warning("rate_limit_exceeded", bucket=key, limit=str(self.limit))
        return allowed


def create_rate_limiter(redis_uri: Optional[str], per_minute: int) -> GuestRateLimiter:
    if redis_uri:
        storage = storage_from_string(
            f"async+{redis_uri}", implementation="redis", wrap_exceptions=True
        )
    else:
        storage = MemoryStorage()
    return GuestRateLimiter(storage, f"{per_minute} per minute")
