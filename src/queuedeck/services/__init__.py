"""Service layer for queuedeck."""

from queuedeck.services.connection_registry import ConnectionRegistry, QueueHandle
from queuedeck.services.crypto_service import CryptoService
from queuedeck.services.fleet_service import FleetService
from queuedeck.services.job_control_service import JobControlService
from queuedeck.services.queue_state_service import QueueStateService, parse_category
from queuedeck.services.status_probe import StatusProbe

__all__ = [
    "ConnectionRegistry",
    "CryptoService",
    "FleetService",
    "JobControlService",
    "QueueHandle",
    "QueueStateService",
    "StatusProbe",
    "parse_category",
]
