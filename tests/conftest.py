"""
Pytest configuration and shared fixtures.

The store is replaced at the HTTP transport seam: ``FakeStore`` interprets the
REST command protocol in memory with a controllable clock, and is mounted with
``httpx.MockTransport`` so the real client code path runs end to end.
"""

import fnmatch
import json
import math
from typing import Any, Dict, List, Optional

import httpx
import pytest

from ephemera.core.config import Settings
from ephemera.services.cache import CacheService
from ephemera.services.local_cache import LocalCache
from ephemera.services.notifications import NotificationStore
from ephemera.services.presence import PresenceTracker
from ephemera.services.rate_limiter import RateLimiter
from ephemera.services.store_client import StoreClient

STORE_URL = "https://store.test"
STORE_TOKEN = "test-token"


class WrongType(Exception):
    pass


class FakeStore:
    """In-memory interpreter for the subset of commands the services use."""

    def __init__(self):
        self.now = 1_000_000.0
        self.data: Dict[str, Any] = {}
        self.expires: Dict[str, float] = {}
        self.published: List[tuple] = []
        self.requests: List[httpx.Request] = []
        self.fail_status: Optional[int] = None
        self.unreachable = False
        self.failing_commands: set = set()
        self.subscribers = 1
        self.scan_calls = 0
        self._scan_snapshot: List[str] = []

    # -- transport ---------------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        if request.headers.get("Authorization") != f"Bearer {STORE_TOKEN}":
            return httpx.Response(401, json={"error": "Unauthorized"})
        if self.fail_status is not None:
            return httpx.Response(self.fail_status, text="unavailable")

        body = json.loads(request.content)
        if request.url.path.endswith("/pipeline"):
            return httpx.Response(200, json=[self.run(cmd) for cmd in body])
        return httpx.Response(200, json=self.run(body))

    def run(self, command: List[str]) -> Dict[str, Any]:
        name, args = command[0].upper(), command[1:]
        if name in self.failing_commands:
            return {"error": f"ERR {name} disabled"}
        handler = getattr(self, f"cmd_{name.lower()}", None)
        if handler is None:
            return {"error": f"ERR unknown command '{name}'"}
        try:
            return {"result": handler(*args)}
        except WrongType:
            return {"error": "WRONGTYPE Operation against a key holding the wrong kind of value"}

    # -- keyspace ----------------------------------------------------------

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def _alive(self, key: str) -> bool:
        expiry = self.expires.get(key)
        if expiry is not None and self.now >= expiry:
            self.data.pop(key, None)
            self.expires.pop(key, None)
        return key in self.data

    def _typed(self, key: str, kind: type, create: bool = False):
        if not self._alive(key):
            if not create:
                return None
            self.data[key] = kind()
        value = self.data[key]
        if not isinstance(value, kind):
            raise WrongType()
        return value

    def _drop_if_empty(self, key: str) -> None:
        if key in self.data and not self.data[key]:
            del self.data[key]
            self.expires.pop(key, None)

    @staticmethod
    def _range(length: int, start: str, stop: str) -> slice:
        lo, hi = int(start), int(stop)
        if lo < 0:
            lo = max(0, length + lo)
        if hi < 0:
            hi = length + hi
        return slice(lo, hi + 1)

    def cmd_ping(self):
        return "PONG"

    def cmd_get(self, key):
        return self._typed(key, str)

    def cmd_set(self, key, value, *opts):
        self.data[key] = value
        self.expires.pop(key, None)
        if len(opts) >= 2 and opts[0].upper() == "EX":
            self.expires[key] = self.now + int(opts[1])
        return "OK"

    def cmd_del(self, *keys):
        removed = 0
        for key in keys:
            if self._alive(key):
                del self.data[key]
                self.expires.pop(key, None)
                removed += 1
        return removed

    def cmd_exists(self, *keys):
        return sum(1 for key in keys if self._alive(key))

    def cmd_expire(self, key, seconds):
        if not self._alive(key):
            return 0
        self.expires[key] = self.now + int(seconds)
        return 1

    def cmd_ttl(self, key):
        if not self._alive(key):
            return -2
        if key not in self.expires:
            return -1
        return math.ceil(self.expires[key] - self.now)

    def cmd_mget(self, *keys):
        return [self.data[k] if self._alive(k) and isinstance(self.data[k], str) else None
                for k in keys]

    def cmd_incr(self, key):
        current = self._typed(key, str)
        value = int(current or 0) + 1
        self.data[key] = str(value)
        return value

    def cmd_scan(self, cursor, *opts):
        options = {opts[i].upper(): opts[i + 1] for i in range(0, len(opts), 2)}
        pattern = options.get("MATCH", "*")
        count = int(options.get("COUNT", 10))
        start = int(cursor)
        if start == 0:
            self.scan_calls = 0
            self._scan_snapshot = sorted(k for k in list(self.data) if self._alive(k))
        self.scan_calls += 1
        keys = self._scan_snapshot
        page = [k for k in keys[start:start + count] if self._alive(k)]
        next_cursor = start + count if start + count < len(keys) else 0
        return [str(next_cursor), [k for k in page if fnmatch.fnmatchcase(k, pattern)]]

    def cmd_publish(self, channel, message):
        self.published.append((channel, message))
        return self.subscribers

    def cmd_lpush(self, key, *values):
        items = self._typed(key, list, create=True)
        for value in values:
            items.insert(0, value)
        return len(items)

    def cmd_lrem(self, key, count, value):
        items = self._typed(key, list)
        if items is None:
            return 0
        before = len(items)
        items[:] = [v for v in items if v != value]
        self._drop_if_empty(key)
        return before - len(items)

    def cmd_lrange(self, key, start, stop):
        items = self._typed(key, list)
        if items is None:
            return []
        return items[self._range(len(items), start, stop)]

    def cmd_ltrim(self, key, start, stop):
        items = self._typed(key, list)
        if items is not None:
            items[:] = items[self._range(len(items), start, stop)]
            self._drop_if_empty(key)
        return "OK"

    def cmd_hset(self, key, *pairs):
        fields = self._typed(key, dict, create=True)
        added = 0
        for i in range(0, len(pairs), 2):
            added += pairs[i] not in fields
            fields[pairs[i]] = pairs[i + 1]
        return added

    def cmd_hget(self, key, field):
        fields = self._typed(key, dict)
        return None if fields is None else fields.get(field)

    def cmd_hmget(self, key, *field_names):
        fields = self._typed(key, dict) or {}
        return [fields.get(f) for f in field_names]

    def cmd_hdel(self, key, *field_names):
        fields = self._typed(key, dict)
        if fields is None:
            return 0
        removed = sum(1 for f in field_names if fields.pop(f, None) is not None)
        self._drop_if_empty(key)
        return removed

    def cmd_sadd(self, key, *members):
        members_set = self._typed(key, set, create=True)
        before = len(members_set)
        members_set.update(members)
        return len(members_set) - before

    def cmd_srem(self, key, *members):
        members_set = self._typed(key, set)
        if members_set is None:
            return 0
        before = len(members_set)
        members_set.difference_update(members)
        self._drop_if_empty(key)
        return before - len(members_set)

    def cmd_smembers(self, key):
        return sorted(self._typed(key, set) or [])


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, upstash_redis_rest_url=STORE_URL, upstash_redis_rest_token=STORE_TOKEN)


@pytest.fixture
def unconfigured_settings() -> Settings:
    return Settings(_env_file=None, upstash_redis_rest_url=None, upstash_redis_rest_token=None)


@pytest.fixture
async def store_client(settings, fake_store):
    client = StoreClient(settings, transport=httpx.MockTransport(fake_store.handle))
    yield client
    await client.shutdown()


@pytest.fixture
def cache(store_client, settings) -> CacheService:
    return CacheService(store_client, settings)


@pytest.fixture
def rate_limiter(cache) -> RateLimiter:
    return RateLimiter(cache)


@pytest.fixture
def notifications(cache, settings) -> NotificationStore:
    return NotificationStore(cache, settings)


@pytest.fixture
def presence(cache, settings) -> PresenceTracker:
    return PresenceTracker(cache, settings)


@pytest.fixture
def local_clock():
    """Mutable clock for LocalCache: call ``local_clock.advance(s)``."""

    class Clock:
        def __init__(self):
            self.now = 100.0

        def __call__(self):
            return self.now

        def advance(self, seconds):
            self.now += seconds

    return Clock()


@pytest.fixture
def local_cache(local_clock) -> LocalCache:
    return LocalCache(max_entries=3, clock=local_clock)
