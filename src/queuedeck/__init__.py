"""queuedeck - inspection and job-control core for BullMQ queue dashboards."""

__version__ = "0.1.0"
