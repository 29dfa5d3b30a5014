"""Prometheus metrics for queue inspection and job control.

Metrics follow the naming convention: queuedeck_<subsystem>_<name>_<unit>
"""

from prometheus_client import Counter, Gauge, Histogram

# -----------------------------------------------------------------------------
# Connection registry
# -----------------------------------------------------------------------------

QUEUE_HANDLES = Gauge(
    "queuedeck_queue_handles",
    "Number of live cached queue handles",
)

# -----------------------------------------------------------------------------
# Job control
# -----------------------------------------------------------------------------

JOB_OPERATIONS_TOTAL = Counter(
    "queuedeck_job_operations_total",
    "Job control operations by outcome",
    ["operation", "status"],
)

BULK_ITEMS_TOTAL = Counter(
    "queuedeck_bulk_items_total",
    "Individual jobs processed by bulk operations",
    ["operation", "status"],
)

# -----------------------------------------------------------------------------
# Status probe
# -----------------------------------------------------------------------------

PROBE_TOTAL = Counter(
    "queuedeck_probe_total",
    "Connection probes by result",
    ["status"],  # online or offline
)

# -----------------------------------------------------------------------------
# Fleet rollup
# -----------------------------------------------------------------------------

ROLLUP_DURATION = Histogram(
    "queuedeck_rollup_duration_seconds",
    "Time to build a fleet rollup",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

ROLLUP_EXCLUDED_QUEUES = Counter(
    "queuedeck_rollup_excluded_queues_total",
    "Queues left out of a fleet rollup because they failed",
)
