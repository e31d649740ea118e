"""Key schema and TTL vocabulary shared by all store-backed services.

Key schema:
    ratelimit:{identifier}:{window}     -> STRING counter (TTL = window length)
    notifications:{user_id}             -> LIST of notification ids, newest first
    notification_items:{user_id}        -> HASH {notification_id -> record JSON}
    user:{user_id}:notifications        -> PUBSUB channel for live listeners
    presence:{user_id}                  -> STRING presence JSON (heartbeat TTL)
    online_users                        -> SET {user_ids}
"""

from typing import Dict

from ephemera.models.results import RateLimitConfig


class CacheTTL:
    """Freshness tiers in seconds."""
    SHORT = 10
    MEDIUM = 30
    LONG = 60
    EXTENDED = 300
    HOUR = 3600
    DAY = 86400


RATE_LIMITS: Dict[str, RateLimitConfig] = {
    "default": RateLimitConfig(max_requests=100, window_seconds=60),
    "strict": RateLimitConfig(max_requests=10, window_seconds=60),
    "auth": RateLimitConfig(max_requests=5, window_seconds=60),
    "admin": RateLimitConfig(max_requests=20, window_seconds=60),
}

ONLINE_USERS_KEY = "online_users"


def user_cache_key(prefix: str, user_id: str, *parts: str) -> str:
    """Cache key for data scoped to one user."""
    return ":".join([prefix, user_id, *parts])


def public_cache_key(prefix: str, *parts: str) -> str:
    """Cache key for data shared by all users."""
    return ":".join([prefix, *parts])


def rate_limit_key(identifier: str, window_index: int) -> str:
    return f"ratelimit:{identifier}:{window_index}"


def notifications_key(user_id: str) -> str:
    return f"notifications:{user_id}"


def notification_items_key(user_id: str) -> str:
    return f"notification_items:{user_id}"


def notification_channel(user_id: str) -> str:
    return f"user:{user_id}:notifications"


def presence_key(user_id: str) -> str:
    return f"presence:{user_id}"
