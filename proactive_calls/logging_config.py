"""
Structured logging for the API, the Celery worker and the trigger CLI.

Every log line is a structlog event name plus key/value context. Context bound
with ``operation_context`` (operation name, call type) is merged into every
event emitted while a trigger runs.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator
import structlog
from proactive_calls.config import config

# Third-party loggers that report every HTTP request or broker heartbeat at INFO.
QUIET_LOGGERS = ("httpx", "httpcore", "celery", "kombu")


def _renderer():
    if config.DEBUG:
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def configure_logging():
    """
    Route stdlib logging to stdout and set up structlog processors.

    JSON lines in production, colored console output when DEBUG is on.
    """
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = None) -> Any:
    """
    Module logger.

    Usage:
        logger = get_logger(__name__)
        logger.info("scheduled_call_placed", scheduled_call_id=12, call_id="abc")
    """
    return structlog.get_logger(name)


@contextmanager
def operation_context(**values) -> Iterator[None]:
    """Bind trigger context (operation, call_type...) to every log event inside the block."""
    with structlog.contextvars.bound_contextvars(**values):
        yield


configure_logging()

logger = get_logger("proactive_calls")
