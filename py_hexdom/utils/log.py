"""Logging setup."""

import logging
import sys
from typing import Optional

import structlog

from ..config import settings


def configure_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Configure structlog on top of the standard library logger.

    Edge walks and domain closure log at debug level, so callers wanting a
    trace of the analysis set level="DEBUG".

    Args:
        level: Log level name, defaults to settings.log_level
        log_format: "json" or "console", defaults to settings.log_format
    """
    level = (level or settings.log_level).upper()
    log_format = log_format or settings.log_format

    logging.basicConfig(format="%(message)s", stream=sys.stderr)
    logging.getLogger().setLevel(getattr(logging, level, logging.INFO))

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
