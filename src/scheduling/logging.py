"""Structured logging for the scheduling engine using structlog.

Console output while developing, JSON in production. Logs go to stderr so the
CLI can print JSON on stdout. Modules log through get_logger(__name__) with
event-name messages ("lesson_assigned") and keyword fields.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

from scheduling.config import get_config


def setup_logging(json_output: bool | None = None, log_level: str | None = None) -> None:
    """Configure structlog processors and output format.

    Args:
        json_output: JSON lines if True, console format if False.
            Defaults to SCHEDULING_LOG_JSON.
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
            Defaults to SCHEDULING_LOG_LEVEL.
    """
    config = get_config()
    if json_output is None:
        json_output = config.log_json
    level = getattr(logging, (log_level or config.log_level).upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.JSONRenderer(ensure_ascii=False)
        if json_output
        else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # Route third-party stdlib loggers (tenacity) to the same stream
    root = logging.getLogger()
    root.handlers = [logging.StreamHandler(sys.stderr)]
    root.setLevel(level)


@contextmanager
def teacher_context(teacher_id: str, **fields: object) -> Iterator[None]:
    """Bind teacher_id (and any extra fields) to every log line in the block."""
    with structlog.contextvars.bound_contextvars(teacher_id=teacher_id, **fields):
        yield


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger bound to the calling module's name."""
    return structlog.get_logger(name)
