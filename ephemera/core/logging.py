"""Structured logging configuration."""

import logging
import sys
from pathlib import Path

import structlog

from ephemera.core.config import Settings


def configure_logging(settings: Settings) -> None:
    """Route stdlib logging to stdout (and ``log_file`` if set) and render with structlog."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))
    logging.basicConfig(level=level, handlers=handlers, format="%(message)s")

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def log_store_command(logger: structlog.BoundLogger, command: str,
                      elapsed: float, **kwargs) -> None:
    """Log a completed store round trip."""
    logger.debug(
        "Store command completed",
        command=command,
        elapsed_ms=round(elapsed * 1000, 2),
        **kwargs
    )


def log_cache_operation(logger: structlog.BoundLogger, operation: str,
                        key: str, hit: bool = None, **kwargs) -> None:
    """Log cache operations."""
    log_data = {
        "operation": operation,
        "cache_key": key,
        **kwargs
    }

    if hit is not None:
        log_data["cache_hit"] = hit

    logger.debug("Cache operation", **log_data)
