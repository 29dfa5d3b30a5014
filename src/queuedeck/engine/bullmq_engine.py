"""BullMQ-backed QueueEngine.

Wraps a ``bullmq.Queue`` for one queue name. Construction only builds the
client; the Redis connection is opened lazily by the first command, so an
unreachable backend surfaces on the first real operation.

Error translation:
- redis connection/timeout errors and socket errors -> UnreachableError
- anything else raised while mutating a job (Lua script refusals such as
  "Job is not in the failed state") -> EngineRejectedError
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from bullmq import Job, Queue
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from queuedeck.domain.models import ConnectionOptions, JobRecord
from queuedeck.engine.protocol import EngineFactory
from queuedeck.errors import EngineRejectedError, NotFoundError, QueueDeckError, UnreachableError

logger = logging.getLogger(__name__)

# States BullMQ counts as "not yet processed"
PENDING_STATES = ("waiting", "paused", "delayed", "prioritized", "waiting-children")

# States cleared by drain() after the waiting/delayed lists are emptied
FINISHED_STATES = ("completed", "failed")


def _opt_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _opt_timestamp(value: Any) -> int | None:
    # bullmq initialises processedOn/finishedOn to 0 until the job starts/ends
    return _opt_int(value) or None


def job_to_record(job: Any) -> JobRecord:
    """Map a ``bullmq.Job`` onto a JobRecord."""
    return JobRecord(
        id=str(job.id),
        name=job.name or "",
        data=job.data,
        progress=getattr(job, "progress", 0) or 0,
        timestamp=_opt_int(getattr(job, "timestamp", None)) or 0,
        processed_on=_opt_timestamp(getattr(job, "processedOn", None)),
        finished_on=_opt_timestamp(getattr(job, "finishedOn", None)),
        failed_reason=getattr(job, "failedReason", None) or None,
        stacktrace=list(getattr(job, "stacktrace", None) or []),
        return_value=getattr(job, "returnvalue", None),
        attempts_made=_opt_int(getattr(job, "attemptsMade", None)) or 0,
        delay=_opt_int(getattr(job, "delay", None)),
        opts=dict(getattr(job, "opts", None) or {}),
    )


@contextmanager
def _translate_errors(action: str, *, mutation: bool = False) -> Iterator[None]:
    try:
        yield
    except QueueDeckError:
        raise
    except (RedisConnectionError, RedisTimeoutError, OSError, asyncio.TimeoutError) as exc:
        raise UnreachableError(
            f"Redis unreachable during {action}: {exc}", details={"action": action}
        ) from exc
    except RedisError as exc:
        raise EngineRejectedError(
            f"Queue engine rejected {action}: {exc}", details={"action": action}
        ) from exc
    except Exception as exc:
        if not mutation:
            raise
        raise EngineRejectedError(
            f"Queue engine rejected {action}: {exc}", details={"action": action}
        ) from exc


class BullMQEngine:
    """QueueEngine implementation on top of the ``bullmq`` package."""

    def __init__(
        self,
        queue_name: str,
        options: ConnectionOptions,
        *,
        prefix: str = "bull",
    ) -> None:
        """Build the BullMQ queue client.

        Args:
            queue_name: Queue name as used by the producers/workers.
            options: Decrypted connection parameters.
            prefix: BullMQ key prefix.
        """
        self._queue_name = queue_name
        self._queue = Queue(
            queue_name,
            {"connection": options.redis_kwargs(), "prefix": prefix},
        )

    @property
    def queue_name(self) -> str:
        return self._queue_name

    async def _load(self, job_id: str) -> Any:
        job = await Job.fromId(self._queue, job_id)
        if job is None:
            raise NotFoundError(f"Job not found: {job_id}", details={"job_id": job_id})
        return job

    async def get_count(self, state: str) -> int:
        with _translate_errors(f"count of {state} jobs"):
            return int(await self._queue.getJobCountByTypes(state))

    async def count(self) -> int:
        with _translate_errors("count"):
            return int(await self._queue.getJobCountByTypes(*PENDING_STATES))

    async def is_paused(self) -> bool:
        with _translate_errors("paused check"):
            return bool(await self._queue.isPaused())

    async def get_jobs(self, states: Sequence[str], start: int, end: int) -> list[JobRecord]:
        with _translate_errors(f"listing {','.join(states)} jobs"):
            jobs = await self._queue.getJobs(list(states), start, end, False)
        return [job_to_record(job) for job in jobs if job is not None]

    async def get_job(self, job_id: str) -> JobRecord | None:
        with _translate_errors(f"fetching job {job_id}"):
            job = await Job.fromId(self._queue, job_id)
        return job_to_record(job) if job is not None else None

    async def get_job_logs(self, job_id: str) -> list[str]:
        with _translate_errors(f"fetching logs of job {job_id}"):
            result = await self._queue.getJobLogs(job_id)
        return list(result.get("logs") or [])

    async def retry_job(self, job_id: str) -> None:
        with _translate_errors(f"retry of job {job_id}", mutation=True):
            job = await self._load(job_id)
            await job.retry("failed")

    async def promote_job(self, job_id: str) -> None:
        with _translate_errors(f"promotion of job {job_id}", mutation=True):
            job = await self._load(job_id)
            await job.promote()

    async def remove_job(self, job_id: str) -> None:
        with _translate_errors(f"removal of job {job_id}", mutation=True):
            job = await self._load(job_id)
            await job.remove()

    async def update_job_data(self, job_id: str, data: Any) -> None:
        with _translate_errors(f"data update of job {job_id}", mutation=True):
            job = await self._load(job_id)
            await job.updateData(data)

    async def add_job(
        self, name: str, data: Any, opts: dict[str, Any] | None = None
    ) -> JobRecord:
        with _translate_errors(f"adding job {name}", mutation=True):
            job = await self._queue.add(name, data, opts or {})
        return job_to_record(job)

    async def pause(self) -> None:
        with _translate_errors("pause", mutation=True):
            await self._queue.pause()

    async def resume(self) -> None:
        with _translate_errors("resume", mutation=True):
            await self._queue.resume()

    async def drain(self) -> None:
        with _translate_errors("drain", mutation=True):
            await self._queue.drain(True)
            # Server-side sweep; grace 0 and limit 0 remove every finished job
            removed = [
                len(await self._queue.clean(0, 0, state) or []) for state in FINISHED_STATES
            ]
        logger.info(
            "Drained queue %s (%d completed, %d failed jobs removed)",
            self._queue_name,
            *removed,
        )

    async def close(self) -> None:
        await self._queue.close()


def bullmq_engine_factory(prefix: str = "bull") -> EngineFactory:
    """Build an EngineFactory producing BullMQEngine instances with ``prefix``."""

    def _factory(queue_name: str, options: ConnectionOptions) -> BullMQEngine:
        return BullMQEngine(queue_name, options, prefix=prefix)

    return _factory
