from __future__ import annotations

import logging
from typing import Optional

import structlog

from procshell.settings import LoggingSettings, LogLevel

LOGGER_NAME = "procshell"

_LEVEL_MAP = {
    LogLevel.debug: logging.DEBUG,
    LogLevel.info: logging.INFO,
    LogLevel.warning: logging.WARNING,
    LogLevel.error: logging.ERROR,
    LogLevel.critical: logging.CRITICAL,
    LogLevel.disabled: logging.CRITICAL + 1,
}


def configure_logging(settings: Optional[LoggingSettings] = None) -> None:
    """Apply logger levels from settings; None restores the defaults."""
    settings = settings or LoggingSettings()
    default_level = _LEVEL_MAP.get(settings.default_level, logging.INFO)

    logging.getLogger(LOGGER_NAME).setLevel(default_level)

    for logger_name, level in settings.enabled_loggers.items():
        logging.getLogger(logger_name).setLevel(_LEVEL_MAP.get(level, default_level))


structlog.configure(
    wrapper_class=structlog.make_filtering_bound_logger(logging.NOTSET),
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
        structlog.dev.ConsoleRenderer(colors=False),
    ],
)

logger: structlog.BoundLogger = structlog.get_logger(LOGGER_NAME)
