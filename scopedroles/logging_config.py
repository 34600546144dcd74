"""Logging configuration for scopedroles."""

import logging
from typing import Optional, Union

from scopedroles.config import RolesConfig

LOGGER_NAME = "scopedroles"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ScopedRolesHandlerMarker(logging.Filter):
    """Filter used to tag the handler installed by :func:`configure_logging`."""

    def filter(self, record: logging.LogRecord) -> bool:
        return True


def _resolve_level(level: Union[int, str, None]) -> int:
    if level is None:
        level = RolesConfig.from_env().log_level
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        logging.getLogger(__name__).warning(f"Invalid log level: {level}, using WARNING")
        return logging.WARNING
    return resolved


def configure_logging(
    level: Union[int, str, None] = None,
    handler: Optional[logging.Handler] = None,
) -> logging.Logger:
    """Configure the ``scopedroles`` logger.

    Installs a single stream handler with the package format. Calling this
    again only updates the level and does not stack handlers.

    Args:
        level: Log level name or number; defaults to ``SCOPEDROLES_LOG_LEVEL``
        handler: Handler to install instead of a ``StreamHandler``

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(_resolve_level(level))

    installed = [
        h
        for h in logger.handlers
        if any(isinstance(f, ScopedRolesHandlerMarker) for f in h.filters)
    ]
    if not installed:
        new_handler = handler or logging.StreamHandler()
        new_handler.addFilter(ScopedRolesHandlerMarker())
        new_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(new_handler)

    return logger


__all__ = ["LOGGER_NAME", "LOG_FORMAT", "configure_logging"]
