"""Logging configuration for the Sandbox domain.

structlog renders through the standard library so uvicorn and Protean
records share one stream. Thread names are attached because billing runs
may fan out across worker threads.
"""

import logging

import structlog

from sandbox.config import get_config


def configure_logging() -> None:
    settings = get_config().logging
    logging.basicConfig(format="%(message)s", level=settings.level.upper())

    # Suppress noisy library loggers
    logging.getLogger("protean").setLevel(logging.WARNING)

    processors = [
        structlog.processors.CallsiteParameterAdder(parameters=[structlog.processors.CallsiteParameter.THREAD_NAME]),
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if settings.format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
