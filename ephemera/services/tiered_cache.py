"""Store-first cache read path with an in-process second tier."""

import inspect
from typing import Any, Awaitable, Callable, Optional, Tuple, Union

from ephemera.core.logging import get_logger, log_cache_operation
from ephemera.models.results import CachedResult
from ephemera.services.cache import CacheService
from ephemera.services.local_cache import LocalCache

logger = get_logger(__name__)


class TieredCache:
    """Reads the shared store first, then the local tier; writes both.

    Backend selection:
    - Store: when endpoint and token are configured
    - Local: always written, read when the store is unavailable or unconfigured
    """

    def __init__(self, cache: CacheService, local: LocalCache):
        self.cache = cache
        self.local = local

    @property
    def use_store(self) -> bool:
        return self.cache.store.configured

    async def get(self, key: str) -> Tuple[Optional[Any], Optional[str]]:
        """Return ``(value, source)`` with source "store", "memory" or None.

        A store miss is authoritative: the local copy is dropped so that
        invalidations made by other instances take effect here too.
        """
        if self.use_store:
            found = await self.cache.lookup(key)
            if found.hit:
                return found.value, "store"
            if not found.failed:
                self.local.delete(key)
                return None, None

        value = self.local.get(key)
        if value is not None:
            log_cache_operation(logger, "get", key, hit=True, source="memory")
            return value, "memory"
        return None, None

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        """Write to the store (if configured) and the local tier."""
        stored = True
        if self.use_store:
            stored = await self.cache.set(key, value, ttl)
        self.local.set(key, value, ttl)
        return stored

    async def invalidate(self, pattern: str) -> int:
        """Sweep both tiers; returns the number of store keys plus local entries removed."""
        removed = self.local.invalidate_pattern(pattern)
        if self.use_store:
            removed += await self.cache.invalidate_pattern(pattern)
        return removed

    async def cached(
        self,
        key: str,
        compute: Callable[[], Union[Any, Awaitable[Any]]],
        ttl: int,
    ) -> CachedResult:
        value, source = await self.get(key)
        if source is not None:
            return CachedResult(data=value, cached=True, source=source)
        data = compute()
        if inspect.isawaitable(data):
            data = await data
        await self.set(key, data, ttl)
        return CachedResult(data=data, cached=False, source="compute")
