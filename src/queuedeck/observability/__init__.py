"""Observability module for queuedeck.

This module provides Prometheus metrics and structured logging.
"""

from queuedeck.observability.logging import configure_logging, queue_context
from queuedeck.observability.metrics import (
    BULK_ITEMS_TOTAL,
    JOB_OPERATIONS_TOTAL,
    PROBE_TOTAL,
    QUEUE_HANDLES,
    ROLLUP_DURATION,
    ROLLUP_EXCLUDED_QUEUES,
)

__all__ = [
    # Logging
    "configure_logging",
    "queue_context",
    # Metrics
    "BULK_ITEMS_TOTAL",
    "JOB_OPERATIONS_TOTAL",
    "PROBE_TOTAL",
    "QUEUE_HANDLES",
    "ROLLUP_DURATION",
    "ROLLUP_EXCLUDED_QUEUES",
]
