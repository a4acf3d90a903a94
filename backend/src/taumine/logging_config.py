"""Structured logging setup shared by the API and the CLI."""

import logging
import sys

import structlog

from taumine.settings import settings


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Configure structlog.

    Args:
        level: Minimum level name (defaults to ``LOG_LEVEL``)
        log_format: ``console`` or ``json`` (defaults to ``LOG_FORMAT``)
    """
    level = (level or settings.log_level).upper()
    log_format = log_format or settings.log_format

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_format == "json":
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    # Third-party libraries (uvicorn, sqlalchemy) log through the stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=getattr(logging, level))


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)
