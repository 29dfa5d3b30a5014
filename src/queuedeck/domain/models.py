"""Pydantic domain models for queuedeck."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, SecretStr

from queuedeck.domain.enums import ProbeStatus

# ============================================================
# Connections
# ============================================================


class ConnectionProfile(BaseModel):
    """A Redis deployment as stored in the metadata store.

    ``password`` holds the encrypted credential (nonce:tag:ciphertext) and is
    only decrypted by the connection registry or the status probe right
    before a client is built.
    """

    id: str = Field(..., description="Stable identifier assigned by the metadata store")
    name: str | None = Field(None, description="Human-friendly name")
    host: str
    port: int = Field(default=6379, ge=1, le=65535)
    username: str | None = None
    password: str | None = Field(default=None, repr=False, description="Encrypted password")
    db: int = Field(default=0, ge=0)
    tls: bool = False


class ConnectionOptions(BaseModel):
    """Decrypted connection parameters handed to a Redis client."""

    host: str
    port: int = 6379
    username: str | None = None
    password: SecretStr | None = None
    db: int = 0
    tls: bool = False

    def redis_kwargs(self) -> dict[str, Any]:
        """Keyword arguments accepted by ``redis.asyncio.Redis``."""
        kwargs: dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "db": self.db,
            "username": self.username,
            "password": self.password.get_secret_value() if self.password else None,
        }
        if self.tls:
            kwargs["ssl"] = True
        return kwargs


class QueueRef(BaseModel):
    """A registered queue and the profile of the Redis deployment hosting it."""

    id: str
    name: str = Field(..., description="Queue name as known to the queue engine")
    display_name: str | None = None
    profile: ConnectionProfile


# ============================================================
# Jobs
# ============================================================


class JobRecord(BaseModel):
    """Uniform projection of a queue engine job."""

    id: str
    name: str
    data: Any = None
    progress: Any = 0
    timestamp: int = Field(default=0, description="Creation time, epoch milliseconds")
    processed_on: int | None = None
    finished_on: int | None = None
    failed_reason: str | None = None
    stacktrace: list[str] = Field(default_factory=list)
    return_value: Any = None
    attempts_made: int = 0
    delay: int | None = None
    opts: dict[str, Any] = Field(default_factory=dict)


class JobStateCounts(BaseModel):
    """Per-category job counts for one queue, computed on demand."""

    latest: int = 0
    active: int = 0
    waiting: int = 0
    waiting_children: int = 0
    prioritized: int = 0
    completed: int = 0
    failed: int = 0
    delayed: int = 0
    paused: int = 0
    is_paused: bool = False


# ============================================================
# Bulk operations
# ============================================================


class BulkFailure(BaseModel):
    """A job a bulk operation could not process."""

    job_id: str
    reason: str


class BulkResult(BaseModel):
    """Outcome of a retry-all / promote-all batch.

    Per-job failures never abort the batch; they are collected here instead.
    """

    operation: str
    succeeded: list[str] = Field(default_factory=list)
    failed: list[BulkFailure] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        """The batch ran to completion (individual jobs may still have failed)."""
        return True

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)


# ============================================================
# Fleet rollup
# ============================================================


class QueueSummary(BaseModel):
    """Counts for one queue in a fleet rollup."""

    id: str
    name: str
    display_name: str | None = None
    counts: JobStateCounts


class FleetTotals(BaseModel):
    """Counts summed across every reachable queue."""

    active: int = 0
    waiting: int = 0
    completed: int = 0
    failed: int = 0
    delayed: int = 0
    paused: int = 0

    def add(self, counts: JobStateCounts) -> None:
        self.active += counts.active
        self.waiting += counts.waiting
        self.completed += counts.completed
        self.failed += counts.failed
        self.delayed += counts.delayed
        self.paused += counts.paused


class FleetRollup(BaseModel):
    """Dashboard-level aggregate over all registered queues."""

    totals: FleetTotals = Field(default_factory=FleetTotals)
    queue_count: int = Field(default=0, description="Registered queues submitted")
    connection_count: int = Field(default=0, description="Distinct connection profiles")
    top_failed_queues: list[QueueSummary] = Field(default_factory=list)
    queues: list[QueueSummary] = Field(
        default_factory=list, description="Reachable queues only, in input order"
    )


# ============================================================
# Status probe
# ============================================================


class ProbeResult(BaseModel):
    """Result of a one-off connectivity check."""

    reachable: bool
    status: ProbeStatus
    message: str | None = None
    latency_ms: float | None = None

    @classmethod
    def online(cls, *, latency_ms: float | None = None) -> ProbeResult:
        return cls(
            reachable=True,
            status=ProbeStatus.ONLINE,
            message="Connection successful",
            latency_ms=latency_ms,
        )

    @classmethod
    def offline(cls, message: str) -> ProbeResult:
        return cls(reachable=False, status=ProbeStatus.OFFLINE, message=message)
