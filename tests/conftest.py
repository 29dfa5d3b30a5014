"""Pytest configuration and fixtures for queuedeck tests."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import pytest

from queuedeck.config import Settings
from queuedeck.domain.models import ConnectionOptions, ConnectionProfile, JobRecord
from queuedeck.errors import EngineRejectedError, NotFoundError, UnreachableError
from queuedeck.services.connection_registry import ConnectionRegistry, QueueHandle
from queuedeck.services.crypto_service import CryptoService
from queuedeck.services.job_control_service import JobControlService
from queuedeck.services.queue_state_service import QueueStateService

TEST_ENCRYPTION_KEY = "0123456789abcdef" * 4

PENDING_STATES = ("waiting", "paused", "delayed", "prioritized", "waiting-children")


class FakeEngine:
    """In-memory QueueEngine.

    Jobs are kept with their state; listings are newest first like BullMQ.
    ``reject`` holds job ids whose mutations the engine refuses, and
    ``unreachable`` makes every call fail like a dead Redis.
    """

    def __init__(
        self,
        queue_name: str,
        options: ConnectionOptions | None = None,
        *,
        unreachable: bool = False,
    ) -> None:
        self.queue_name = queue_name
        self.options = options
        self.unreachable = unreachable
        self.jobs: dict[str, JobRecord] = {}
        self.states: dict[str, str] = {}
        self.logs: dict[str, list[str]] = {}
        self.reject: set[str] = set()
        self.paused = False
        self.closed = False
        self.calls: list[str] = []
        self._next_id = 1
        self._clock = 1_700_000_000_000

    def _check(self, call: str) -> None:
        self.calls.append(call)
        if self.unreachable:
            raise UnreachableError(f"Redis unreachable during {call}")

    def _new_job(self, name: str, data: Any, opts: dict[str, Any] | None = None) -> JobRecord:
        job_id = str(self._next_id)
        self._next_id += 1
        self._clock += 1000
        job = JobRecord(id=job_id, name=name, data=data, timestamp=self._clock, opts=opts or {})
        self.jobs[job_id] = job
        return job

    def seed(self, state: str, count: int = 1, *, name: str = "job") -> list[JobRecord]:
        created = []
        for _ in range(count):
            job = self._new_job(name, {"n": self._next_id})
            self.states[job.id] = state
            created.append(job)
        return created

    def state_of(self, job_id: str) -> str | None:
        return self.states.get(job_id)

    async def get_count(self, state: str) -> int:
        self._check("get_count")
        return sum(1 for s in self.states.values() if s == state)

    async def count(self) -> int:
        self._check("count")
        return sum(1 for s in self.states.values() if s in PENDING_STATES)

    async def is_paused(self) -> bool:
        self._check("is_paused")
        return self.paused

    async def get_jobs(self, states: Sequence[str], start: int, end: int) -> list[JobRecord]:
        self._check("get_jobs")
        matching = [self.jobs[i] for i, s in self.states.items() if s in states]
        matching.sort(key=lambda job: job.timestamp, reverse=True)
        return matching[start:] if end < 0 else matching[start : end + 1]

    async def get_job(self, job_id: str) -> JobRecord | None:
        self._check("get_job")
        return self.jobs.get(job_id)

    async def get_job_logs(self, job_id: str) -> list[str]:
        self._check("get_job_logs")
        return list(self.logs.get(job_id, []))

    def _mutable(self, job_id: str, expected: str, action: str) -> None:
        if job_id not in self.jobs:
            raise NotFoundError(f"Job not found: {job_id}")
        if job_id in self.reject or self.states[job_id] != expected:
            raise EngineRejectedError(f"Job {job_id} is not in the {expected} state. {action}")

    async def retry_job(self, job_id: str) -> None:
        self._check("retry_job")
        self._mutable(job_id, "failed", "reprocessJob")
        self.states[job_id] = "waiting"

    async def promote_job(self, job_id: str) -> None:
        self._check("promote_job")
        self._mutable(job_id, "delayed", "promote")
        self.states[job_id] = "waiting"

    async def remove_job(self, job_id: str) -> None:
        self._check("remove_job")
        self.jobs.pop(job_id)
        self.states.pop(job_id)

    async def update_job_data(self, job_id: str, data: Any) -> None:
        self._check("update_job_data")
        self.jobs[job_id] = self.jobs[job_id].model_copy(update={"data": data})

    async def add_job(
        self, name: str, data: Any, opts: dict[str, Any] | None = None
    ) -> JobRecord:
        self._check("add_job")
        job = self._new_job(name, data, opts)
        self.states[job.id] = "delayed" if (opts or {}).get("delay") else "waiting"
        return job

    async def pause(self) -> None:
        self._check("pause")
        self.paused = True

    async def resume(self) -> None:
        self._check("resume")
        self.paused = False

    async def drain(self) -> None:
        self._check("drain")
        self.jobs.clear()
        self.states.clear()

    async def close(self) -> None:
        self.closed = True


class FakeEngineFactory:
    """EngineFactory recording every engine it builds, keyed by queue name."""

    def __init__(self) -> None:
        self.engines: dict[str, FakeEngine] = {}
        self.created = 0
        self.unreachable: set[str] = set()

    def __call__(self, queue_name: str, options: ConnectionOptions) -> FakeEngine:
        self.created += 1
        engine = FakeEngine(queue_name, options, unreachable=queue_name in self.unreachable)
        self.engines[queue_name] = engine
        return engine


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        encryption_key=TEST_ENCRYPTION_KEY,
        probe_connect_timeout_seconds=0.5,
        rollup_queue_timeout_seconds=0.5,
    )


@pytest.fixture
def crypto_service() -> CryptoService:
    """Create a CryptoService instance for testing."""
    return CryptoService(TEST_ENCRYPTION_KEY)


@pytest.fixture
def engine_factory() -> FakeEngineFactory:
    return FakeEngineFactory()


@pytest.fixture
def registry(
    crypto_service: CryptoService, engine_factory: FakeEngineFactory, test_settings: Settings
) -> ConnectionRegistry:
    return ConnectionRegistry(crypto_service, engine_factory=engine_factory, settings=test_settings)


@pytest.fixture
def profile(crypto_service: CryptoService) -> ConnectionProfile:
    return ConnectionProfile(
        id="redis-1",
        name="local",
        host="localhost",
        port=6379,
        password=crypto_service.encrypt("s3cret"),
        db=2,
    )


@pytest.fixture
def handle(registry: ConnectionRegistry, profile: ConnectionProfile) -> QueueHandle:
    return registry.resolve("emails", profile)


@pytest.fixture
def engine(handle: QueueHandle) -> FakeEngine:
    assert isinstance(handle.engine, FakeEngine)
    return handle.engine


@pytest.fixture
def state_service(test_settings: Settings) -> QueueStateService:
    return QueueStateService(test_settings)


@pytest.fixture
def control_service() -> JobControlService:
    return JobControlService()
