"""Structured logging for the classified_retry namespace.

Engine modules log through ``structlog.get_logger(__name__)``. By default
those events go wherever the host application routes stdlib/structlog
logging. ``configure_logging`` is an opt-in for scripts and workers that
have no logging setup of their own: it renders the library's events as
JSON (production) or console lines (development) without touching the
root logger or an existing structlog configuration.
"""

import logging
import sys

import structlog
from structlog.types import EventDict, WrappedLogger

from classified_retry.config import settings

LOGGER_NAMESPACE = "classified_retry"


def add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Tag events with the library name."""
    event_dict.setdefault("app", settings.APP_NAME)
    return event_dict


def _shared_processors(is_production: bool) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
    ]
    if is_production:
        processors.append(structlog.processors.format_exc_info)
    return processors


def configure_logging(
    log_level: str | None = None, environment: str | None = None
) -> logging.Logger:
    """Route classified_retry events to stdout.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (default: settings.LOG_LEVEL)
        environment: "production" selects JSON output (default: settings.ENVIRONMENT)

    Returns:
        The configured ``classified_retry`` stdlib logger.

    Only the ``classified_retry`` logger gets a handler; it stops propagating
    so events are not rendered twice. structlog itself is configured only
    when nothing else has configured it yet.
    """
    log_level = log_level or settings.LOG_LEVEL
    environment = environment or settings.ENVIRONMENT
    log_level_int = getattr(logging, log_level.upper(), logging.INFO)
    is_production = environment.lower() == "production"

    shared_processors = _shared_processors(is_production)

    if not structlog.is_configured():
        structlog.configure(
            processors=shared_processors
            + [
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    renderer: structlog.types.Processor
    if is_production:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.setLevel(log_level_int)
    handler.set_name(LOGGER_NAMESPACE)

    library_logger = logging.getLogger(LOGGER_NAMESPACE)
    # Replace only a handler installed by an earlier call
    for existing in list(library_logger.handlers):
        if existing.get_name() == LOGGER_NAMESPACE:
            library_logger.removeHandler(existing)
    library_logger.addHandler(handler)
    library_logger.setLevel(log_level_int)
    library_logger.propagate = False

    structlog.get_logger(__name__).debug(
        "Logging configured",
        log_level=log_level,
        environment=environment,
        renderer="json" if is_production else "console",
    )
    return library_logger
