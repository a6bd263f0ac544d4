"""Centralized logging configuration for matches, scripts and the admin server."""

from __future__ import annotations

import logging
import os
from typing import Iterable

DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"
LEVEL_ENV_VAR = "BUGFIGHTS_LOG_LEVEL"


def configure_logging(
    *,
    level: str | None = None,
    format: str = DEFAULT_FORMAT,
    datefmt: str = DEFAULT_DATEFMT,
    include_aiohttp: bool = True,
    extra_loggers: Iterable[str] | None = None,
) -> logging.Logger:
    """Configure logging for the combat core.

    Args:
        level: Optional explicit log level. Falls back to the
            ``BUGFIGHTS_LOG_LEVEL`` env var or INFO when not provided.
        format: Log format string.
        datefmt: Date format string.
        include_aiohttp: Whether to align aiohttp loggers with the package level.
        extra_loggers: Additional logger names to align with the configured level.

    Returns:
        The package logger (``bugfights``).
    """
    raw_level = level if level is not None else os.getenv(LEVEL_ENV_VAR)
    resolved_level = (raw_level or "INFO").upper()
    logging.basicConfig(level=resolved_level, format=format, datefmt=datefmt)

    app_logger = logging.getLogger("bugfights")
    app_logger.setLevel(resolved_level)

    if include_aiohttp:
        for aiohttp_logger in ("aiohttp.access", "aiohttp.server", "aiohttp.web"):
            logging.getLogger(aiohttp_logger).setLevel(resolved_level)

    if extra_loggers:
        for logger_name in extra_loggers:
            logging.getLogger(logger_name).setLevel(resolved_level)

    app_logger.debug("Logging configured at %s", resolved_level)
    return app_logger
