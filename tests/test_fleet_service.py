from __future__ import annotations

import asyncio

import pytest

from queuedeck.config import Settings
from queuedeck.domain.models import ConnectionOptions, ConnectionProfile, QueueRef
from queuedeck.services.connection_registry import ConnectionRegistry
from queuedeck.services.crypto_service import CryptoService
from queuedeck.services.fleet_service import FleetService
from queuedeck.services.queue_state_service import QueueStateService

from .conftest import FakeEngine, FakeEngineFactory


class SlowEngine(FakeEngine):
    """Engine whose pause check hangs longer than the rollup deadline."""

    async def is_paused(self) -> bool:
        await asyncio.sleep(5)
        return False


@pytest.fixture
def fleet_service(
    registry: ConnectionRegistry, state_service: QueueStateService, test_settings: Settings
) -> FleetService:
    return FleetService(registry, state_service, test_settings)


def _refs(profile: ConnectionProfile, *names: str) -> list[QueueRef]:
    return [QueueRef(id=f"q-{name}", name=name, profile=profile) for name in names]


def _seed(registry: ConnectionRegistry, ref: QueueRef, **states: int) -> FakeEngine:
    engine = registry.resolve(ref.name, ref.profile).engine
    assert isinstance(engine, FakeEngine)
    for state, count in states.items():
        engine.seed(state, count)
    return engine


@pytest.mark.asyncio
async def test_rollup_skips_unreachable_queue(
    fleet_service: FleetService,
    registry: ConnectionRegistry,
    engine_factory: FakeEngineFactory,
    profile: ConnectionProfile,
) -> None:
    engine_factory.unreachable.add("broken")
    emails, reports, broken = _refs(profile, "emails", "reports", "broken")
    _seed(registry, emails, active=1, waiting=2, failed=3)
    _seed(registry, reports, completed=4, failed=1, delayed=2)

    rollup = await fleet_service.build_rollup([emails, reports, broken])

    assert rollup.queue_count == 3
    assert rollup.connection_count == 1
    assert [summary.name for summary in rollup.queues] == ["emails", "reports"]
    assert rollup.totals.active == 1
    assert rollup.totals.waiting == 2
    assert rollup.totals.completed == 4
    assert rollup.totals.failed == 4
    assert rollup.totals.delayed == 2
    assert rollup.totals.paused == 0


@pytest.mark.asyncio
async def test_top_failed_queues_are_ranked_and_limited(
    fleet_service: FleetService, registry: ConnectionRegistry, profile: ConnectionProfile
) -> None:
    refs = _refs(profile, "a", "b", "c", "d", "e", "f", "g")
    for ref, failed in zip(refs, [2, 0, 7, 1, 5, 3, 4], strict=True):
        if failed:
            _seed(registry, ref, failed=failed)

    rollup = await fleet_service.build_rollup(refs)

    assert [summary.name for summary in rollup.top_failed_queues] == ["c", "e", "g", "f", "a"]
    assert all(summary.counts.failed > 0 for summary in rollup.top_failed_queues)


@pytest.mark.asyncio
async def test_no_failures_means_no_top_failed(
    fleet_service: FleetService, registry: ConnectionRegistry, profile: ConnectionProfile
) -> None:
    (ref,) = _refs(profile, "emails")
    _seed(registry, ref, completed=3)

    rollup = await fleet_service.build_rollup([ref])

    assert rollup.top_failed_queues == []
    assert rollup.totals.completed == 3


@pytest.mark.asyncio
async def test_connection_count_counts_distinct_profiles(
    fleet_service: FleetService, profile: ConnectionProfile
) -> None:
    other = profile.model_copy(update={"id": "redis-2"})
    refs = _refs(profile, "a", "b") + _refs(other, "a")

    rollup = await fleet_service.build_rollup(refs)

    assert rollup.queue_count == 3
    assert rollup.connection_count == 2
    assert len(rollup.queues) == 3


@pytest.mark.asyncio
async def test_empty_fleet(fleet_service: FleetService) -> None:
    rollup = await fleet_service.build_rollup([])

    assert rollup.queue_count == 0
    assert rollup.connection_count == 0
    assert rollup.queues == []
    assert rollup.totals.failed == 0


@pytest.mark.asyncio
async def test_queue_with_corrupt_credential_is_excluded(
    fleet_service: FleetService, registry: ConnectionRegistry, profile: ConnectionProfile
) -> None:
    bad_profile = ConnectionProfile(id="bad", host="localhost", password="not-encrypted")
    (good,) = _refs(profile, "emails")
    (bad,) = _refs(bad_profile, "reports")
    _seed(registry, good, waiting=2)

    rollup = await fleet_service.build_rollup([good, bad])

    assert [summary.id for summary in rollup.queues] == ["q-emails"]
    assert rollup.totals.waiting == 2
    assert rollup.connection_count == 2


@pytest.mark.asyncio
async def test_slow_queue_is_excluded_after_deadline(
    crypto_service: CryptoService, test_settings: Settings, profile: ConnectionProfile
) -> None:
    def factory(queue_name: str, options: ConnectionOptions) -> FakeEngine:
        if queue_name == "slow":
            return SlowEngine(queue_name, options)
        engine = FakeEngine(queue_name, options)
        engine.seed("failed", 2)
        return engine

    registry = ConnectionRegistry(crypto_service, engine_factory=factory, settings=test_settings)
    service = FleetService(registry, QueueStateService(test_settings), test_settings)

    rollup = await service.build_rollup(_refs(profile, "fast", "slow"))

    assert [summary.name for summary in rollup.queues] == ["fast"]
    assert rollup.totals.failed == 2
