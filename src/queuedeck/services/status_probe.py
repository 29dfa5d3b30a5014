"""Reachability check for Redis connection profiles.

A probe uses its own short-lived client, never a cached queue handle, with a
short connect timeout and retries disabled so one dead backend cannot stall a
health sweep. The client is closed whatever the outcome.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from pydantic import SecretStr, ValidationError
from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff

from queuedeck.config import Settings
from queuedeck.config import settings as default_settings
from queuedeck.domain.models import ConnectionOptions, ConnectionProfile, ProbeResult
from queuedeck.errors import QueueDeckError
from queuedeck.observability.metrics import PROBE_TOTAL
from queuedeck.services.crypto_service import CryptoService

logger = logging.getLogger(__name__)


class StatusProbe:
    """Connect, PING, disconnect. Never raises."""

    def __init__(
        self,
        crypto_service: CryptoService,
        *,
        settings: Settings | None = None,
        client_factory: Callable[..., Any] = Redis,
    ) -> None:
        self._crypto = crypto_service
        self._settings = settings or default_settings
        self._client_factory = client_factory

    async def probe(self, profile: ConnectionProfile) -> ProbeResult:
        """Check whether a stored connection profile is reachable."""
        try:
            password = self._crypto.decrypt(profile.password) if profile.password else None
        except QueueDeckError as exc:
            logger.warning("Probe of profile %s skipped: %s", profile.id, exc.code)
            return self._record(ProbeResult.offline("Stored credential could not be decrypted"))

        options = ConnectionOptions(
            host=profile.host,
            port=profile.port,
            username=profile.username or None,
            password=SecretStr(password) if password else None,
            db=profile.db,
            tls=profile.tls,
        )
        return await self._ping(options)

    async def test_connection(
        self,
        host: str,
        port: int = 6379,
        *,
        password: str | None = None,
        username: str | None = None,
        db: int = 0,
        tls: bool = False,
    ) -> ProbeResult:
        """Check unsaved, plaintext connection parameters (e.g. a config form)."""
        try:
            options = ConnectionOptions(
                host=host,
                port=port,
                username=username or None,
                password=SecretStr(password) if password else None,
                db=db,
                tls=tls,
            )
        except ValidationError as exc:
            return self._record(ProbeResult.offline(f"Invalid connection parameters: {exc}"))
        return await self._ping(options)

    async def _ping(self, options: ConnectionOptions) -> ProbeResult:
        timeout = self._settings.probe_connect_timeout_seconds
        client: Any = None
        started = time.perf_counter()
        try:
            client = self._client_factory(
                **options.redis_kwargs(),
                socket_connect_timeout=timeout,
                socket_timeout=timeout,
                retry=Retry(NoBackoff(), 0),
            )
            # Bounds the whole exchange, not only the TCP connect
            await asyncio.wait_for(client.ping(), timeout=timeout)
        except Exception as exc:
            logger.info(
                "Probe of %s:%s failed: %s", options.host, options.port, type(exc).__name__
            )
            return self._record(ProbeResult.offline(_describe(exc)))
        finally:
            if client is not None:
                await _close_quietly(client)

        latency_ms = (time.perf_counter() - started) * 1000
        return self._record(ProbeResult.online(latency_ms=round(latency_ms, 2)))

    @staticmethod
    def _record(result: ProbeResult) -> ProbeResult:
        PROBE_TOTAL.labels(status=result.status.value).inc()
        return result


def _describe(exc: Exception) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return "Connection timed out"
    return str(exc) or type(exc).__name__


async def _close_quietly(client: Any) -> None:
    try:
        await client.aclose()
    except Exception as exc:
        logger.debug("Error closing probe connection: %s", exc)
