"""Logging utilities for Image Harvester."""

import logging
import sys

import structlog
from structlog.stdlib import LoggerFactory

NOISY_LOGGERS = ['httpx', 'httpcore', 'asyncio', 'playwright', 'urllib3']
LOG_FORMATS = ('json', 'console')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def setup_logging(service_name: str = "image-harvester", log_level: str = "INFO", log_format: str = "json") -> None:
    """
    Set up structured logging for the harvester.

    Logs go to stderr so command output on stdout stays machine-readable.
    ``log_format`` picks structlog's JSON renderer or its console renderer.
    """
    level = getattr(logging, log_level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    logging.getLogger().setLevel(level)

    renderer = (
        structlog.dev.ConsoleRenderer(colors=False)
        if log_format == 'console'
        else structlog.processors.JSONRenderer()
    )
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
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Reduce noise from external libraries
    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    structlog.get_logger(service_name).debug("logging configured", level=log_level.upper(), format=log_format)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger."""
    return structlog.get_logger(name)
