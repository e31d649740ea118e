"""Shared ephemeral state for stateless request handlers.

Cached results, rate-limit counters, notification feeds and presence, kept in
a REST key-value store reachable from every instance.
"""

from .core.config import Settings
from .core.exceptions import ConfigurationError, StoreError, TransportError
from .core.health import get_health_status, health_check
from .models.notifications import NotificationRecord, NotificationType
from .models.results import (
    CachedResult,
    CacheLookup,
    HealthResult,
    LookupStatus,
    RateLimitResult,
)
from .services.cache import CacheService
from .services.keys import CacheTTL, RATE_LIMITS
from .services.local_cache import LocalCache
from .services.notifications import NotificationStore
from .services.presence import PresenceTracker
from .services.rate_limiter import RateLimiter
from .services.store_client import StoreClient
from .services.tiered_cache import TieredCache

__all__ = [
    "Settings",
    "StoreError",
    "ConfigurationError",
    "TransportError",
    "health_check",
    "get_health_status",
    "NotificationRecord",
    "NotificationType",
    "CachedResult",
    "CacheLookup",
    "HealthResult",
    "LookupStatus",
    "RateLimitResult",
    "CacheService",
    "CacheTTL",
    "RATE_LIMITS",
    "LocalCache",
    "NotificationStore",
    "PresenceTracker",
    "RateLimiter",
    "StoreClient",
    "TieredCache",
]
