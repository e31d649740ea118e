"""Result shapes returned by the store-backed services."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class LookupStatus(str, Enum):
    """Outcome of a cache read."""
    HIT = "hit"
    MISS = "miss"
    ERROR = "error"      # Store unreachable, unconfigured or returned garbage


@dataclass
class CacheLookup(Generic[T]):
    """Cache read that keeps 'absent' apart from 'store failed'."""
    status: LookupStatus
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def hit(self) -> bool:
        return self.status is LookupStatus.HIT

    @property
    def failed(self) -> bool:
        return self.status is LookupStatus.ERROR


@dataclass
class CachedResult(Generic[T]):
    """Read-through result with hit/miss flag for instrumentation."""
    data: T
    cached: bool
    source: str = "compute"  # "store", "memory" or "compute"


@dataclass
class RateLimitResult:
    """Fixed-window rate limit decision."""
    allowed: bool
    remaining: int
    reset_in: int
    limit: int = 0

    def headers(self) -> Dict[str, str]:
        """Response headers describing the current window."""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_in),
        }


@dataclass(frozen=True)
class RateLimitConfig:
    """Named quota: max requests per window."""
    max_requests: int
    window_seconds: int


class StoreStatus(str, Enum):
    CONNECTED = "connected"
    ERROR = "error"
    NOT_CONFIGURED = "not_configured"


@dataclass
class HealthResult:
    """Store round-trip probe."""
    connected: bool
    latency_ms: Optional[float] = None
    status: StoreStatus = StoreStatus.ERROR
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"connected": self.connected, "status": self.status.value}
        if self.latency_ms is not None:
            data["latency"] = self.latency_ms
        if self.error:
            data["error"] = self.error
        return data
