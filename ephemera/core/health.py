"""Health check utilities.

Callers probe the store before expensive work and short-circuit to a degraded
path when it is unreachable or unconfigured.
"""
import time
from typing import Any, Dict, Optional, TYPE_CHECKING

from ephemera.core.exceptions import ConfigurationError, StoreError
from ephemera.core.logging import get_logger
from ephemera.models.results import HealthResult, StoreStatus

if TYPE_CHECKING:
    from ephemera.services.local_cache import LocalCache
    from ephemera.services.store_client import StoreClient

logger = get_logger(__name__)

# Module-level startup time tracking
_startup_time: float = 0.0


def set_startup_time() -> None:
    """Record the startup time. Call once when the container is wired."""
    global _startup_time
    _startup_time = time.time()


def get_uptime() -> float:
    """Get uptime in seconds since startup."""
    return time.time() - _startup_time if _startup_time else 0.0


async def health_check(store: "StoreClient") -> HealthResult:
    """PING the store and measure the round trip."""
    start = time.perf_counter()
    try:
        await store.execute(["PING"])
    except ConfigurationError as e:
        return HealthResult(connected=False, status=StoreStatus.NOT_CONFIGURED, error=str(e))
    except StoreError as e:
        logger.warning("Store health check failed", error=str(e))
        return HealthResult(connected=False, status=StoreStatus.ERROR, error=str(e))

    latency_ms = round((time.perf_counter() - start) * 1000, 2)
    return HealthResult(connected=True, latency_ms=latency_ms, status=StoreStatus.CONNECTED)


async def get_health_status(
    store: "StoreClient",
    local_cache: Optional["LocalCache"] = None,
) -> Dict[str, Any]:
    """Summary for a /health style endpoint.

    Returns:
        Dict containing overall status, store probe, local cache size and uptime.
    """
    probe = await health_check(store)

    return {
        "status": "healthy" if probe.connected else "degraded",
        "store": probe.to_dict(),
        "local_cache_entries": local_cache.size() if local_cache is not None else 0,
        "uptime_seconds": round(get_uptime(), 1),
    }
