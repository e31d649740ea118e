"""Dependency injection container for the ephemeral-state layer."""

from dependency_injector import containers, providers

from ephemera.core.config import Settings
from ephemera.services.cache import CacheService
from ephemera.services.local_cache import LocalCache
from ephemera.services.notifications import NotificationStore
from ephemera.services.presence import PresenceTracker
from ephemera.services.rate_limiter import RateLimiter
from ephemera.services.store_client import StoreClient
from ephemera.services.tiered_cache import TieredCache


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    settings = providers.Singleton(
        Settings,
    )

    # Sole owner of network I/O (pooled httpx client)
    store_client = providers.Singleton(
        StoreClient,
        settings=settings,
    )

    # Per-instance hot path, never authoritative
    local_cache = providers.Singleton(
        LocalCache,
        max_entries=settings.provided.local_cache_max_entries,
    )

    cache = providers.Singleton(
        CacheService,
        store=store_client,
        settings=settings,
    )

    tiered_cache = providers.Singleton(
        TieredCache,
        cache=cache,
        local=local_cache,
    )

    rate_limiter = providers.Singleton(
        RateLimiter,
        cache=cache,
    )

    notifications = providers.Singleton(
        NotificationStore,
        cache=cache,
        settings=settings,
    )

    presence = providers.Singleton(
        PresenceTracker,
        cache=cache,
        settings=settings,
    )


# Global container instance
container = Container()
