"""Process lifecycle for handlers that embed the ephemeral-state layer."""

from contextlib import asynccontextmanager

from ephemera.core.container import Container, container as default_container
from ephemera.core.health import set_startup_time
from ephemera.core.logging import configure_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(container: Container = default_container):
    """Configure logging, open the store client, and close it on exit.

    Usage:
        async with lifespan() as c:
            limiter = c.rate_limiter()
    """
    settings = container.settings()
    configure_logging(settings)
    set_startup_time()

    logger.info("Starting ephemeral-state layer", store_configured=settings.store_configured)
    await container.store_client().startup()
    try:
        yield container
    finally:
        await container.store_client().shutdown()
        logger.info("Ephemeral-state layer shutdown complete")
