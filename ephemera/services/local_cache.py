"""In-process TTL cache used as a best-effort hot path.

Contents are local to one warm instance and vanish on a cold start, so nothing
here may be relied on for correctness.
"""

import fnmatch
import inspect
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from ephemera.core.logging import get_logger, log_cache_operation
from ephemera.models.results import CachedResult

logger = get_logger(__name__)


@dataclass
class CacheEntry:
    """A single cache entry with absolute expiry."""
    data: Any
    expires_at: float
    hits: int = 0


class LocalCache:
    """Bounded in-memory cache with TTL and fewest-hits eviction."""

    def __init__(self, max_entries: int = 500, clock: Callable[[], float] = time.monotonic):
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        """Get cached data if not expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            del self._entries[key]
            return None
        entry.hits += 1
        return entry.data

    def set(self, key: str, data: Any, ttl: int) -> None:
        """Set cache data with TTL in seconds."""
        if key not in self._entries and len(self._entries) >= self.max_entries:
            self._make_room()
        self._entries[key] = CacheEntry(data=data, expires_at=self._clock() + ttl)

    def _make_room(self) -> None:
        if self.cleanup():
            return
        victim = min(self._entries, key=lambda k: self._entries[k].hits)
        del self._entries[victim]
        log_cache_operation(logger, "evict", victim)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def invalidate_pattern(self, pattern: str) -> int:
        """Drop keys matching a glob pattern (``*``, ``?``)."""
        matched = [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]
        for key in matched:
            del self._entries[key]
        return len(matched)

    def cleanup(self) -> int:
        """Remove expired entries; returns how many were dropped."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now > e.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def size(self) -> int:
        return len(self._entries)

    async def cached(
        self,
        key: str,
        compute: Callable[[], Union[Any, Awaitable[Any]]],
        ttl: int,
    ) -> CachedResult:
        """Read-through over the local tier only."""
        existing = self.get(key)
        if existing is not None:
            return CachedResult(data=existing, cached=True, source="memory")
        data = compute()
        if inspect.isawaitable(data):
            data = await data
        self.set(key, data, ttl)
        return CachedResult(data=data, cached=False, source="compute")
