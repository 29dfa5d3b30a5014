"""Mutating operations on jobs and queues.

Single-job operations look the job up first so a missing job surfaces as
NotFoundError, distinct from UnreachableError (backend down) and
EngineRejectedError (job in the wrong state). Bulk operations are best-effort:
every job is attempted concurrently and per-job failures are collected in the
returned BulkResult instead of aborting the batch.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from queuedeck.domain.enums import JobCategory
from queuedeck.domain.models import BulkFailure, BulkResult, JobRecord
from queuedeck.errors import InvalidArgumentError, NotFoundError, QueueDeckError
from queuedeck.observability.logging import queue_context
from queuedeck.observability.metrics import BULK_ITEMS_TOTAL, JOB_OPERATIONS_TOTAL
from queuedeck.services.connection_registry import QueueHandle

logger = logging.getLogger(__name__)

# Options that tie a job to its original identity, schedule or dedup window
DUPLICATE_DROPPED_OPTS = frozenset(
    {"jobId", "repeat", "repeatJobKey", "deduplication", "debounce"}
)


@contextmanager
def _tracked(operation: str, handle: QueueHandle) -> Iterator[None]:
    try:
        with queue_context(
            handle.queue_name, profile_id=handle.profile_id, operation=operation
        ):
            yield
    except QueueDeckError as exc:
        JOB_OPERATIONS_TOTAL.labels(operation=operation, status=exc.code.lower()).inc()
        raise
    except Exception:
        JOB_OPERATIONS_TOTAL.labels(operation=operation, status="error").inc()
        raise
    else:
        JOB_OPERATIONS_TOTAL.labels(operation=operation, status="success").inc()


def _ensure_json(value: Any, what: str) -> None:
    try:
        json.dumps(value)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"{what} must be JSON-serializable: {exc}") from exc


class JobControlService:
    """Retry, promote, remove, duplicate, edit and enqueue jobs; pause and drain queues."""

    async def _require_job(self, handle: QueueHandle, job_id: str) -> JobRecord:
        job = await handle.engine.get_job(job_id)
        if job is None:
            raise NotFoundError(
                f"Job not found: {job_id}",
                details={"job_id": job_id, "queue": handle.queue_name},
            )
        return job

    async def retry(self, handle: QueueHandle, job_id: str) -> None:
        """Move a failed job back to waiting."""
        with _tracked("retry", handle):
            await self._require_job(handle, job_id)
            await handle.engine.retry_job(job_id)
            logger.info("Retried job %s on queue %s", job_id, handle.queue_name)

    async def promote(self, handle: QueueHandle, job_id: str) -> None:
        """Make a delayed job immediately runnable."""
        with _tracked("promote", handle):
            await self._require_job(handle, job_id)
            await handle.engine.promote_job(job_id)
            logger.info("Promoted job %s on queue %s", job_id, handle.queue_name)

    async def remove(self, handle: QueueHandle, job_id: str) -> None:
        """Delete a job permanently."""
        with _tracked("remove", handle):
            await self._require_job(handle, job_id)
            await handle.engine.remove_job(job_id)
            logger.info("Removed job %s from queue %s", job_id, handle.queue_name)

    async def duplicate(self, handle: QueueHandle, job_id: str) -> JobRecord:
        """Enqueue a copy of a job under a fresh id.

        The copy keeps the name, data and options, minus the options bound to
        the original job's identity (custom job id, repeat schedule,
        deduplication or debounce window). Keeping those would make the engine
        hand back the original job instead of creating a new one.
        """
        with _tracked("duplicate", handle):
            job = await self._require_job(handle, job_id)
            opts = {k: v for k, v in job.opts.items() if k not in DUPLICATE_DROPPED_OPTS}
            copy = await handle.engine.add_job(job.name, job.data, opts)
            logger.info(
                "Duplicated job %s as %s on queue %s", job_id, copy.id, handle.queue_name
            )
        return copy

    async def edit_data(self, handle: QueueHandle, job_id: str, data: Any) -> None:
        """Replace a job's payload in place. The job's state is unchanged.

        Raises:
            InvalidArgumentError: ``data`` is not a JSON object.
        """
        with _tracked("edit_data", handle):
            if not isinstance(data, dict):
                raise InvalidArgumentError(
                    "Job data must be a JSON object",
                    details={"type": type(data).__name__},
                )
            _ensure_json(data, "Job data")
            await self._require_job(handle, job_id)
            await handle.engine.update_job_data(job_id, data)
            logger.info("Updated data of job %s on queue %s", job_id, handle.queue_name)

    async def add(
        self,
        handle: QueueHandle,
        name: str,
        data: Any,
        options: dict[str, Any] | None = None,
    ) -> JobRecord:
        """Enqueue a new job.

        Args:
            handle: Resolved queue handle.
            name: Job name.
            data: JSON-serializable payload.
            options: Engine job options (delay, priority, attempts, ...), passed through.
        """
        with _tracked("add", handle):
            if not name or not name.strip():
                raise InvalidArgumentError("Job name is required")
            if options is not None and not isinstance(options, dict):
                raise InvalidArgumentError("Job options must be an object")
            _ensure_json(data, "Job data")
            job = await handle.engine.add_job(name, data, options)
            logger.info("Added job %s (%s) to queue %s", job.id, name, handle.queue_name)
        return job

    async def pause(self, handle: QueueHandle) -> None:
        """Stop workers from picking up new jobs. Pausing a paused queue is a no-op."""
        with _tracked("pause", handle):
            await handle.engine.pause()
            logger.info("Paused queue %s", handle.queue_name)

    async def resume(self, handle: QueueHandle) -> None:
        """Resume a paused queue. Resuming a running queue is a no-op."""
        with _tracked("resume", handle):
            await handle.engine.resume()
            logger.info("Resumed queue %s", handle.queue_name)

    async def empty(self, handle: QueueHandle) -> None:
        """Remove every job from the queue. Irreversible."""
        with _tracked("empty", handle):
            await handle.engine.drain()
            logger.warning("Emptied queue %s", handle.queue_name)

    async def retry_all(self, handle: QueueHandle) -> BulkResult:
        """Retry every failed job."""
        with _tracked("retry_all", handle):
            failed = await handle.engine.get_jobs([JobCategory.FAILED.engine_state], 0, -1)
            return await self._fan_out("retry_all", handle, failed, handle.engine.retry_job)

    async def promote_all(self, handle: QueueHandle) -> BulkResult:
        """Promote every delayed job."""
        with _tracked("promote_all", handle):
            delayed = await handle.engine.get_jobs([JobCategory.DELAYED.engine_state], 0, -1)
            return await self._fan_out("promote_all", handle, delayed, handle.engine.promote_job)

    async def _fan_out(
        self,
        operation: str,
        handle: QueueHandle,
        jobs: Sequence[JobRecord],
        action: Callable[[str], Awaitable[None]],
    ) -> BulkResult:
        results = await asyncio.gather(
            *(action(job.id) for job in jobs), return_exceptions=True
        )

        result = BulkResult(operation=operation)
        for job, outcome in zip(jobs, results, strict=True):
            if isinstance(outcome, Exception):
                logger.warning(
                    "%s: job %s on queue %s failed: %s",
                    operation,
                    job.id,
                    handle.queue_name,
                    outcome,
                )
                result.failed.append(BulkFailure(job_id=job.id, reason=str(outcome)))
                BULK_ITEMS_TOTAL.labels(operation=operation, status="failed").inc()
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.succeeded.append(job.id)
                BULK_ITEMS_TOTAL.labels(operation=operation, status="success").inc()

        logger.info(
            "%s on queue %s: %d succeeded, %d failed",
            operation,
            handle.queue_name,
            len(result.succeeded),
            len(result.failed),
        )
        return result
