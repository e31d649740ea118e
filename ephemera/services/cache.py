"""Cache service over the REST key-value store.

Every public method is fail-soft: store failures are logged and turned into a
safe default (None, False, 0, -1, []). Callers that must tell a genuine miss
apart from an outage use :meth:`CacheService.lookup`.
"""

import inspect
import json
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from ephemera.core.config import Settings
from ephemera.core.exceptions import StoreError
from ephemera.core.logging import get_logger, log_cache_operation
from ephemera.models.results import CachedResult, CacheLookup, LookupStatus
from ephemera.services.store_client import StoreClient

logger = get_logger(__name__)

SCAN_BATCH = 100


def dumps(value: Any) -> str:
    return json.dumps(value, default=str, separators=(",", ":"))


class CacheService:
    """Typed get/set/delete over the store plus read-through and sweep helpers."""

    def __init__(self, store: StoreClient, settings: Settings):
        self.store = store
        self.settings = settings

    # ============================================================================
    # Key-Value Operations
    # ============================================================================

    async def lookup(self, key: str) -> CacheLookup:
        """Read ``key`` and report HIT, MISS or ERROR explicitly."""
        try:
            raw = await self.store.execute(["GET", key])
        except StoreError as e:
            logger.error("Cache get failed", operation="get", key=key, error=str(e))
            return CacheLookup(LookupStatus.ERROR, error=str(e))

        if raw is None:
            log_cache_operation(logger, "get", key, hit=False)
            return CacheLookup(LookupStatus.MISS)

        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.error("Cache value is not valid JSON", operation="get", key=key, error=str(e))
            return CacheLookup(LookupStatus.ERROR, error=str(e))

        log_cache_operation(logger, "get", key, hit=True)
        return CacheLookup(LookupStatus.HIT, value=value)

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache; None on miss or failure."""
        return (await self.lookup(key)).value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value with TTL in seconds (defaults to the medium tier)."""
        ttl = ttl or self.settings.cache_ttl
        try:
            await self.store.execute(["SET", key, dumps(value), "EX", ttl])
            log_cache_operation(logger, "set", key, ttl=ttl)
            return True
        except StoreError as e:
            logger.error("Cache set failed", operation="set", key=key, error=str(e))
            return False

    async def delete(self, key: str) -> bool:
        """Delete ``key``. True when the command succeeded, even if the key was absent."""
        try:
            deleted = await self.store.execute(["DEL", key])
            log_cache_operation(logger, "delete", key, deleted=bool(deleted))
            return True
        except StoreError as e:
            logger.error("Cache delete failed", operation="delete", key=key, error=str(e))
            return False

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self.store.execute(["EXISTS", key]))
        except StoreError as e:
            logger.error("Cache exists check failed", operation="exists", key=key, error=str(e))
            return False

    async def expire(self, key: str, ttl: int) -> bool:
        """Set TTL for an existing key. False if the key is missing or the store failed."""
        try:
            return bool(await self.store.execute(["EXPIRE", key, ttl]))
        except StoreError as e:
            logger.error("Cache expire failed", operation="expire", key=key, error=str(e))
            return False

    async def ttl(self, key: str) -> int:
        """Remaining TTL in seconds; -2 if absent, -1 if no TTL or on failure."""
        try:
            return int(await self.store.execute(["TTL", key]))
        except StoreError as e:
            logger.error("Cache ttl failed", operation="ttl", key=key, error=str(e))
            return -1

    # ============================================================================
    # Batch Operations
    # ============================================================================

    async def mget(self, keys: Sequence[str]) -> List[Optional[Any]]:
        """Get several keys in one round trip, aligned to ``keys``."""
        if not keys:
            return []
        try:
            raw_values = await self.store.execute(["MGET", *keys])
        except StoreError as e:
            logger.error("Cache mget failed", operation="mget", keys=len(keys), error=str(e))
            return [None] * len(keys)

        values = []
        for key, raw in zip(keys, raw_values or []):
            if raw is None:
                values.append(None)
                continue
            try:
                values.append(json.loads(raw))
            except (TypeError, ValueError):
                logger.error("Cache value is not valid JSON", operation="mget", key=key)
                values.append(None)
        values.extend([None] * (len(keys) - len(values)))
        return values

    async def mset(self, entries: Sequence[Dict[str, Any]]) -> bool:
        """Set several entries in one pipeline.

        Args:
            entries: Dicts with ``key``, ``value`` and optional ``ttl``
        """
        if not entries:
            return True
        commands = [
            ["SET", entry["key"], dumps(entry["value"]), "EX",
             entry.get("ttl") or self.settings.cache_ttl]
            for entry in entries
        ]
        try:
            await self.store.pipeline(commands)
            log_cache_operation(logger, "mset", entries[0]["key"], count=len(entries))
            return True
        except StoreError as e:
            logger.error("Cache mset failed", operation="mset", keys=len(entries), error=str(e))
            return False

    async def invalidate_pattern(self, pattern: str) -> int:
        """Delete keys matching ``pattern`` with a cursor SCAN; returns the count deleted."""
        deleted = 0
        cursor = "0"
        try:
            while True:
                cursor, keys = await self.store.execute(
                    ["SCAN", cursor, "MATCH", pattern, "COUNT", SCAN_BATCH])
                cursor = str(cursor)
                if keys:
                    await self.store.execute(["DEL", *keys])
                    deleted += len(keys)
                if cursor == "0":
                    break
        except StoreError as e:
            logger.error("Cache invalidate pattern failed", operation="invalidate_pattern",
                         pattern=pattern, deleted=deleted, error=str(e))
            return deleted

        log_cache_operation(logger, "invalidate_pattern", pattern, deleted=deleted)
        return deleted

    # ============================================================================
    # Counters and Pub/Sub
    # ============================================================================

    async def incr(self, key: str) -> int:
        """Atomic increment; 0 on failure."""
        try:
            return int(await self.store.execute(["INCR", key]))
        except StoreError as e:
            logger.error("Cache incr failed", operation="incr", key=key, error=str(e))
            return 0

    async def incr_with_ttl(self, key: str, ttl: int) -> int:
        """Increment and (re)apply TTL in one pipeline; 0 on failure."""
        try:
            results = await self.store.pipeline([["INCR", key], ["EXPIRE", key, ttl]])
            return int(results[0])
        except StoreError as e:
            logger.error("Cache incr failed", operation="incr_with_ttl", key=key, error=str(e))
            return 0

    async def publish(self, channel: str, message: Any) -> int:
        """Publish to a channel; returns the receiver count, 0 on failure."""
        payload = message if isinstance(message, str) else dumps(message)
        try:
            return int(await self.store.execute(["PUBLISH", channel, payload]) or 0)
        except StoreError as e:
            logger.error("Publish failed", operation="publish", channel=channel, error=str(e))
            return 0

    # ============================================================================
    # Read-Through
    # ============================================================================

    async def cached(
        self,
        key: str,
        compute: Callable[[], Union[Any, Awaitable[Any]]],
        ttl: Optional[int] = None,
    ) -> CachedResult:
        """Return the cached value for ``key`` or compute, store and return it.

        ``compute`` runs at most once per call and never on a hit.
        """
        found = await self.lookup(key)
        if found.hit:
            return CachedResult(data=found.value, cached=True, source="store")

        data = compute()
        if inspect.isawaitable(data):
            data = await data
        await self.set(key, data, ttl)
        return CachedResult(data=data, cached=False, source="compute")
