"""Structured logging setup for the CloudDeck cost analytics service.

All modules log through ``get_logger(__name__)`` and emit key-value events.
``configure_logging`` is called once from the application lifespan; until
then structlog's defaults apply, which keeps tests free of global setup.
"""

import logging
from typing import Any

import structlog

from clouddeck_cost.settings import Settings


def configure_logging(settings: Settings) -> None:
    """Configure structlog to print rendered events to stdout.

    Args:
        settings: Service settings carrying log_level and log_json.
    """
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if settings.log_json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(service=settings.service_name)


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """Return a bound structlog logger for a module."""
    return structlog.get_logger(name)
