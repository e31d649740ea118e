"""Fixed-window request counting per identifier.

Each window is its own counter key ``ratelimit:{identifier}:{now // window}``
that is incremented and re-expired in one pipeline, so concurrent callers on
any instance share a single atomic count. A burst straddling a window boundary
can reach twice the quota.

When the store is unavailable the limiter fails open.
"""

import time

from ephemera.core.logging import get_logger
from ephemera.models.results import RateLimitResult
from ephemera.services.cache import CacheService
from ephemera.services.keys import RATE_LIMITS, rate_limit_key

logger = get_logger(__name__)


class RateLimiter:
    """Fixed-window rate limiter backed by atomic store counters."""

    def __init__(self, cache: CacheService):
        self.cache = cache

    async def check_rate_limit(self, identifier: str, max_requests: int,
                               window_seconds: int) -> RateLimitResult:
        """Count one request for ``identifier`` and decide whether it is allowed."""
        if max_requests < 0 or window_seconds <= 0:
            raise ValueError("max_requests must be >= 0 and window_seconds > 0")

        now = int(time.time())
        key = rate_limit_key(identifier, now // window_seconds)
        reset_in = window_seconds - (now % window_seconds)

        count = await self.cache.incr_with_ttl(key, window_seconds)
        if count <= 0:
            logger.warning("Rate limit store unavailable, allowing request",
                           identifier=identifier)
            return RateLimitResult(allowed=True, remaining=max_requests,
                                   reset_in=window_seconds, limit=max_requests)

        result = RateLimitResult(
            allowed=count <= max_requests,
            remaining=max(0, max_requests - count),
            reset_in=reset_in,
            limit=max_requests,
        )
        if not result.allowed:
            logger.info("Rate limit exceeded", identifier=identifier,
                        count=count, limit=max_requests, reset_in=reset_in)
        return result

    async def check_preset(self, identifier: str, preset: str = "default") -> RateLimitResult:
        """Check against one of the named quotas in RATE_LIMITS."""
        config = RATE_LIMITS[preset]
        return await self.check_rate_limit(identifier, config.max_requests,
                                           config.window_seconds)
