"""Fleet-wide rollup across every registered queue."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Coroutine, Sequence
from typing import Any

from queuedeck.config import Settings
from queuedeck.config import settings as default_settings
from queuedeck.domain.models import FleetRollup, JobStateCounts, QueueRef, QueueSummary
from queuedeck.observability.metrics import ROLLUP_DURATION, ROLLUP_EXCLUDED_QUEUES
from queuedeck.services.connection_registry import ConnectionRegistry
from queuedeck.services.queue_state_service import QueueStateService

logger = logging.getLogger(__name__)


class FleetService:
    """Builds dashboard rollups, tolerating unreachable queues."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        state_service: QueueStateService,
        settings: Settings | None = None,
    ) -> None:
        self._registry = registry
        self._state = state_service
        self._settings = settings or default_settings

    async def build_rollup(self, queues: Sequence[QueueRef]) -> FleetRollup:
        """Sum job counts over ``queues`` and rank the queues with failures.

        Queues whose handle cannot be resolved or whose counts cannot be read
        (including those exceeding ``rollup_queue_timeout_seconds``) are logged
        and left out of both the totals and the per-queue list. This call does
        not raise because of a single bad queue.
        """
        started = time.perf_counter()
        summaries = await asyncio.gather(*(self._summarize(ref) for ref in queues))

        rollup = FleetRollup(
            queue_count=len(queues),
            connection_count=len({ref.profile.id for ref in queues}),
        )
        for summary in summaries:
            if summary is None:
                continue
            rollup.totals.add(summary.counts)
            rollup.queues.append(summary)

        failing = [summary for summary in rollup.queues if summary.counts.failed > 0]
        failing.sort(key=lambda summary: summary.counts.failed, reverse=True)
        rollup.top_failed_queues = failing[: self._settings.rollup_top_failed_limit]

        elapsed = time.perf_counter() - started
        ROLLUP_DURATION.observe(elapsed)
        logger.info(
            "Fleet rollup: %d/%d queues reachable in %.3fs",
            len(rollup.queues),
            len(queues),
            elapsed,
        )
        return rollup

    async def _summarize(self, ref: QueueRef) -> QueueSummary | None:
        try:
            handle = self._registry.resolve(ref.name, ref.profile)
            counts = await self._counts_with_deadline(self._state.get_counts(handle))
        except Exception as exc:
            ROLLUP_EXCLUDED_QUEUES.inc()
            logger.warning(
                "Excluding queue %s (%s) from rollup: %s: %s",
                ref.name,
                ref.id,
                type(exc).__name__,
                exc,
            )
            return None
        return QueueSummary(
            id=ref.id, name=ref.name, display_name=ref.display_name, counts=counts
        )

    async def _counts_with_deadline(
        self, counts: Coroutine[Any, Any, JobStateCounts]
    ) -> JobStateCounts:
        timeout = self._settings.rollup_queue_timeout_seconds
        if timeout is None:
            return await counts
        return await asyncio.wait_for(counts, timeout=timeout)
