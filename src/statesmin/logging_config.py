"""Structured logging setup for applications embedding statesmin.

statesmin modules log through get_logger(__name__), a structlog logger
wrapped around a standard library logger. As a library it does not
configure logging on import, and its events are dropped by the standard
library defaults until the application calls configure_logging() (or sets
up logging itself).
"""

import logging
from typing import Any, Optional

import structlog

from statesmin.config import StatesminSettings, get_settings


logging.getLogger("statesmin").addHandler(logging.NullHandler())


def get_logger(name: str) -> Any:
    """Return a structlog logger that emits through logging.getLogger(name)."""
    return structlog.wrap_logger(
        logging.getLogger(name),
        wrapper_class=structlog.stdlib.BoundLogger,
    )


def configure_logging(settings: Optional[StatesminSettings] = None) -> None:
    """Configure structlog on top of the standard logging module.

    Args:
        settings: Settings to read the level and renderer from. Defaults
                  to the process-wide settings.
    """
    settings = settings or get_settings()

    logging.basicConfig(format="%(message)s", level=settings.log_level)
    logging.getLogger("statesmin").setLevel(settings.log_level)

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
