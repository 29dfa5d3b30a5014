"""Structured logging for queuedeck.

Services log through plain ``logging.getLogger(__name__)`` loggers. Their
records are rendered by a structlog ``ProcessorFormatter``: JSON lines by
default, colored console lines when ``debug`` is set. Fields bound with
``queue_context`` (queue name, connection profile, operation) are merged into
every record emitted inside the block, so a burst of per-job warnings from a
bulk retry can be filtered down to one queue.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO, TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from queuedeck.config import Settings

# Third-party loggers that are noisy below WARNING
QUIET_LOGGERS = ("redis", "bullmq", "asyncio")


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def build_formatter(debug: bool) -> structlog.stdlib.ProcessorFormatter:
    """Formatter turning stdlib records into JSON or console lines."""
    renderer: structlog.types.Processor
    if debug:
        renderer = structlog.dev.ConsoleRenderer()
        processors = [structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer]
    else:
        renderer = structlog.processors.JSONRenderer()
        processors = [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ]
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_pre_chain(),
        processors=processors,
    )


def configure_logging(settings: Settings, *, stream: IO[str] | None = None) -> None:
    """Route every log record of the process through the structlog formatter.

    Args:
        settings: Settings with ``debug`` and ``log_level``.
        stream: Destination, stderr by default so stdout stays machine-readable.
    """
    log_level = getattr(logging, settings.log_level.upper())

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(build_formatter(settings.debug))

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def queue_context(queue: str, **fields: Any) -> Iterator[None]:
    """Bind ``queue`` and extra fields to every record logged inside the block."""
    with structlog.contextvars.bound_contextvars(queue=queue, **fields):
        yield
