from __future__ import annotations

import logging
import sys
from typing import Optional

import structlog

from .settings import LoggingSettings, LogLevel

LOGGER_NAME = "editblocks"

LEVEL_MAP = {
    LogLevel.debug: logging.DEBUG,
    LogLevel.info: logging.INFO,
    LogLevel.warning: logging.WARNING,
    LogLevel.error: logging.ERROR,
    LogLevel.critical: logging.CRITICAL,
}


structlog.configure(
    wrapper_class=structlog.make_filtering_bound_logger(logging.NOTSET),
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
        structlog.dev.ConsoleRenderer(),
    ],
)

logger: structlog.BoundLogger = structlog.get_logger(LOGGER_NAME)


def configure_logging(
    settings: Optional[LoggingSettings] = None,
    *,
    stream=None,
) -> None:
    """
    Route editblocks logs to a stream handler (stderr by default) and apply
    level settings. Safe to call more than once.
    """
    if settings is None:
        settings = LoggingSettings()

    default_level = LEVEL_MAP.get(settings.default_level, logging.WARNING)

    pkg_logger = logging.getLogger(LOGGER_NAME)
    pkg_logger.setLevel(default_level)

    target = stream if stream is not None else sys.stderr
    has_handler = any(
        isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is target
        for h in pkg_logger.handlers
    )
    if not has_handler:
        handler = logging.StreamHandler(target)
        handler.setFormatter(logging.Formatter("%(message)s"))
        pkg_logger.addHandler(handler)

    for logger_name, level in settings.enabled_loggers.items():
        override_level = LEVEL_MAP.get(level, default_level)
        logging.getLogger(logger_name).setLevel(override_level)
