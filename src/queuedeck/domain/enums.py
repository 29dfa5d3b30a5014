"""Enums for queuedeck domain models."""

from __future__ import annotations

from enum import Enum


class JobCategory(str, Enum):
    """Job listing category.

    Engine-native categories map one-to-one onto a BullMQ job state. LATEST and
    PAUSED are composite views assembled from several native states and are
    never sent to the engine as-is.
    """

    LATEST = "latest"  # Recent jobs across active/waiting/completed/failed
    ACTIVE = "active"
    WAITING = "waiting"
    WAITING_CHILDREN = "waiting-children"
    PRIORITIZED = "prioritized"
    COMPLETED = "completed"
    FAILED = "failed"
    DELAYED = "delayed"
    PAUSED = "paused"  # Waiting + active, only while the queue is paused

    @classmethod
    def _missing_(cls, value: object) -> JobCategory | None:
        # Dashboard URLs use camelCase for this one
        if value == "waitingChildren":
            return cls.WAITING_CHILDREN
        return None

    @property
    def is_composite(self) -> bool:
        return self in (JobCategory.LATEST, JobCategory.PAUSED)

    @property
    def engine_state(self) -> str:
        """BullMQ state name for a native category."""
        if self.is_composite:
            raise ValueError(f"{self.value} is a composite category")
        return self.value


class ProbeStatus(str, Enum):
    """Reachability of a Redis connection profile."""

    ONLINE = "online"
    OFFLINE = "offline"
