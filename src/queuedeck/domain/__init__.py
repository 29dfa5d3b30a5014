"""Domain models and enums."""

from queuedeck.domain.enums import JobCategory, ProbeStatus
from queuedeck.domain.models import (
    BulkFailure,
    BulkResult,
    ConnectionOptions,
    ConnectionProfile,
    FleetRollup,
    FleetTotals,
    JobRecord,
    JobStateCounts,
    ProbeResult,
    QueueRef,
    QueueSummary,
)

__all__ = [
    "BulkFailure",
    "BulkResult",
    "ConnectionOptions",
    "ConnectionProfile",
    "FleetRollup",
    "FleetTotals",
    "JobCategory",
    "JobRecord",
    "JobStateCounts",
    "ProbeResult",
    "ProbeStatus",
    "QueueRef",
    "QueueSummary",
]
