"""
Structured logging via structlog.

Log entries carry an event name plus key/value context:
  timestamp, level, logger, event, relay_id, job, session_key, device_id, ...

Celery workers log through stdlib `logging`; those records are rendered by the
same processor chain so worker and API output look alike.

Usage:
    from citypulse.core.logging import get_logger
    log = get_logger(__name__)
    log.info("relay_created", relay_id=packet.id, origin=packet.origin)

    with log_context(job="fire_911"):
        ...  # every entry in here carries job=fire_911
"""

import logging
import sys

import structlog
from structlog.contextvars import bound_contextvars

from citypulse.core.config import get_settings

log_context = bound_contextvars


def configure_logging(environment: str | None = None) -> None:
    """
    Configure structlog and the stdlib root logger. Call once at process startup.
    Development: pretty colored console output.
    Anything else: JSON lines (machine-readable for log shipping).
    """
    environment = environment or get_settings().environment
    is_dev = environment == "development"
    level = logging.DEBUG if is_dev else logging.INFO

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    renderer = (
        structlog.dev.ConsoleRenderer()
        if is_dev
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                renderer,
            ],
        )
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)


def get_logger(name: str = __name__):
    return structlog.get_logger(name)
