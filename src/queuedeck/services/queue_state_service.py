"""Read-side view of a queue: counts, job listings, single jobs and logs.

Native categories are passed straight to the engine. The two composite
categories are assembled here:

- LATEST: a best-effort "most recent" view merged from small windows of the
  active, waiting, completed and failed lists. It is not an exact global
  ordering; the engine keeps no cross-state index by creation time.
- PAUSED: the waiting and active jobs of a paused queue, or nothing while the
  queue is running. The engine has no literal "paused" job state.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from queuedeck.config import Settings
from queuedeck.config import settings as default_settings
from queuedeck.domain.enums import JobCategory
from queuedeck.domain.models import JobRecord, JobStateCounts
from queuedeck.errors import InvalidArgumentError, NotFoundError
from queuedeck.services.connection_registry import QueueHandle

# Per-state window sizes used to build the LATEST view
LATEST_WINDOWS: tuple[tuple[JobCategory, int], ...] = (
    (JobCategory.ACTIVE, 10),
    (JobCategory.WAITING, 10),
    (JobCategory.COMPLETED, 15),
    (JobCategory.FAILED, 15),
)

JobLister = Callable[[QueueHandle, int, int], Awaitable[list[JobRecord]]]


def parse_category(value: JobCategory | str) -> JobCategory:
    """Coerce a category name, raising InvalidArgumentError for unknown names."""
    try:
        return JobCategory(value)
    except ValueError as exc:
        raise InvalidArgumentError(
            f"Unknown job category: {value}",
            details={"category": str(value), "allowed": [c.value for c in JobCategory]},
        ) from exc


class QueueStateService:
    """Computes job counts and listings for a resolved queue handle."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or default_settings
        self._composite_listers: dict[JobCategory, JobLister] = {
            JobCategory.LATEST: self._list_latest,
            JobCategory.PAUSED: self._list_paused,
        }

    async def get_counts(self, handle: QueueHandle) -> JobStateCounts:
        """Count jobs in every category.

        All queries run concurrently; if any of them fails the whole call fails.
        """
        engine = handle.engine
        (
            active,
            waiting,
            waiting_children,
            prioritized,
            completed,
            failed,
            delayed,
            total,
            is_paused,
        ) = await asyncio.gather(
            engine.get_count(JobCategory.ACTIVE.engine_state),
            engine.get_count(JobCategory.WAITING.engine_state),
            engine.get_count(JobCategory.WAITING_CHILDREN.engine_state),
            engine.get_count(JobCategory.PRIORITIZED.engine_state),
            engine.get_count(JobCategory.COMPLETED.engine_state),
            engine.get_count(JobCategory.FAILED.engine_state),
            engine.get_count(JobCategory.DELAYED.engine_state),
            engine.count(),
            engine.is_paused(),
        )

        latest = min(active + waiting + completed + failed, self._settings.latest_max_jobs)

        return JobStateCounts(
            latest=latest,
            active=active,
            waiting=waiting,
            waiting_children=waiting_children,
            prioritized=prioritized,
            completed=completed,
            failed=failed,
            delayed=delayed,
            # A running queue has no meaningful "paused" count
            paused=total if is_paused else 0,
            is_paused=is_paused,
        )

    async def list_jobs(
        self,
        handle: QueueHandle,
        category: JobCategory | str,
        start: int = 0,
        end: int | None = None,
    ) -> list[JobRecord]:
        """List jobs of one category within the inclusive window ``start..end``.

        Args:
            handle: Resolved queue handle.
            category: Category or its name (``waitingChildren`` is accepted).
            start: Zero-based start index.
            end: End index; defaults to ``start + default_page_size``.

        Raises:
            InvalidArgumentError: Unknown category or invalid window.
        """
        category = parse_category(category)
        if end is None:
            end = start + self._settings.default_page_size
        if start < 0 or end < start:
            raise InvalidArgumentError(
                f"Invalid job window {start}..{end}", details={"start": start, "end": end}
            )

        lister = self._composite_listers.get(category)
        if lister is not None:
            return await lister(handle, start, end)
        return await handle.engine.get_jobs([category.engine_state], start, end)

    async def _list_latest(self, handle: QueueHandle, start: int, end: int) -> list[JobRecord]:
        batches = await asyncio.gather(
            *(
                handle.engine.get_jobs(
                    [category.engine_state], start, min(end, start + window)
                )
                for category, window in LATEST_WINDOWS
            )
        )
        merged = [job for batch in batches for job in batch]
        merged.sort(key=lambda job: job.timestamp or 0, reverse=True)
        return merged[: end - start]

    async def _list_paused(self, handle: QueueHandle, start: int, end: int) -> list[JobRecord]:
        if not await handle.engine.is_paused():
            return []
        return await handle.engine.get_jobs(
            [JobCategory.WAITING.engine_state, JobCategory.ACTIVE.engine_state], start, end
        )

    async def get_job(self, handle: QueueHandle, job_id: str) -> JobRecord | None:
        """Return the job, or None if it does not exist."""
        return await handle.engine.get_job(job_id)

    async def get_logs(self, handle: QueueHandle, job_id: str) -> list[str]:
        """Return the log lines of a job.

        Raises:
            NotFoundError: The job no longer exists.
        """
        job = await handle.engine.get_job(job_id)
        if job is None:
            raise NotFoundError(f"Job not found: {job_id}", details={"job_id": job_id})
        return await handle.engine.get_job_logs(job_id)
