"""Connection registry: one cached queue engine per (queue, Redis profile).

The registry is an explicit object owned by the service container, not a
module-level map. Handles are created lazily on first use and live until
``evict``/``clear`` or ``aclose`` at shutdown.

Concurrency: everything touching ``self._handles`` runs synchronously between
await points, so the check-then-insert in ``resolve`` cannot interleave with
another task on the same event loop. Using the registry from several threads
would require a lock around the map.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from pydantic import SecretStr

from queuedeck.config import Settings
from queuedeck.config import settings as default_settings
from queuedeck.domain.models import ConnectionOptions, ConnectionProfile
from queuedeck.engine.bullmq_engine import bullmq_engine_factory
from queuedeck.engine.protocol import EngineFactory, QueueEngine
from queuedeck.observability.metrics import QUEUE_HANDLES
from queuedeck.services.crypto_service import CryptoService

logger = logging.getLogger(__name__)

HandleKey = tuple[str, str]


@dataclass(eq=False)
class QueueHandle:
    """A live engine bound to one queue on one Redis deployment."""

    key: HandleKey
    queue_name: str
    profile_id: str
    engine: QueueEngine


class ConnectionRegistry:
    """Owns creation, caching and teardown of queue handles."""

    def __init__(
        self,
        crypto_service: CryptoService,
        *,
        engine_factory: EngineFactory | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            crypto_service: Codec used to decrypt stored passwords.
            engine_factory: Builds a QueueEngine for a queue name and connection
                options. Defaults to the BullMQ adapter.
            settings: Settings providing the BullMQ key prefix.
        """
        self._crypto = crypto_service
        self._settings = settings or default_settings
        self._engine_factory = engine_factory or bullmq_engine_factory(
            self._settings.bullmq_prefix
        )
        self._handles: dict[HandleKey, QueueHandle] = {}

    @staticmethod
    def cache_key(queue_name: str, profile: ConnectionProfile) -> HandleKey:
        # Profiles are identified by their stored id, not their field values
        return (queue_name, profile.id)

    def connection_options(self, profile: ConnectionProfile) -> ConnectionOptions:
        """Decrypt a profile into client connection options."""
        password = self._crypto.decrypt(profile.password) if profile.password else None
        return ConnectionOptions(
            host=profile.host,
            port=profile.port,
            username=profile.username or None,
            password=SecretStr(password) if password else None,
            db=profile.db,
            tls=profile.tls,
        )

    def resolve(self, queue_name: str, profile: ConnectionProfile) -> QueueHandle:
        """Return the cached handle for ``queue_name`` on ``profile``, creating it if needed.

        No network I/O happens here; an unreachable backend surfaces on the
        first engine call.
        """
        key = self.cache_key(queue_name, profile)
        handle = self._handles.get(key)
        if handle is not None:
            return handle

        engine = self._engine_factory(queue_name, self.connection_options(profile))
        handle = QueueHandle(key=key, queue_name=queue_name, profile_id=profile.id, engine=engine)
        self._handles[key] = handle
        QUEUE_HANDLES.set(len(self._handles))
        logger.info(
            "Created handle for queue %s on profile %s (host=%s port=%s db=%s)",
            queue_name,
            profile.id,
            profile.host,
            profile.port,
            profile.db,
        )
        return handle

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, key: object) -> bool:
        return key in self._handles

    async def evict(self, queue_name: str, profile: ConnectionProfile) -> bool:
        """Drop and close one handle. Returns False if it was not cached."""
        handle = self._handles.pop(self.cache_key(queue_name, profile), None)
        QUEUE_HANDLES.set(len(self._handles))
        if handle is None:
            return False
        await handle.engine.close()
        logger.info("Evicted handle for queue %s on profile %s", *handle.key)
        return True

    def clear(self) -> None:
        """Drop every cached handle.

        In-flight operations keep their references and are not drained, and the
        dropped engines are not closed. Use ``aclose`` for an orderly shutdown.
        """
        self._handles.clear()
        QUEUE_HANDLES.set(0)

    async def aclose(self) -> None:
        """Close every cached engine and empty the cache."""
        handles = list(self._handles.values())
        self.clear()
        results = await asyncio.gather(
            *(handle.engine.close() for handle in handles), return_exceptions=True
        )
        for handle, result in zip(handles, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning(
                    "Failed to close handle for queue %s on profile %s: %s",
                    handle.queue_name,
                    handle.profile_id,
                    result,
                )
        logger.info("Connection registry closed (%d handles)", len(handles))
