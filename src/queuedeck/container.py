"""Service container wiring the codec, registry and services together.

Construct one ``QueueDeck`` at startup and hand it to request handlers; close
it at shutdown so every cached Redis connection is released.

Usage:
    ```python
    async with QueueDeck.from_settings() as deck:
        handle = deck.registry.resolve(queue.name, queue.profile)
        counts = await deck.state.get_counts(handle)
    ```
"""

from __future__ import annotations

import logging
from types import TracebackType

from queuedeck.config import Settings
from queuedeck.config import settings as default_settings
from queuedeck.domain.models import ConnectionProfile
from queuedeck.engine.protocol import EngineFactory
from queuedeck.services.connection_registry import ConnectionRegistry, QueueHandle
from queuedeck.services.crypto_service import CryptoService
from queuedeck.services.fleet_service import FleetService
from queuedeck.services.job_control_service import JobControlService
from queuedeck.services.queue_state_service import QueueStateService
from queuedeck.services.status_probe import StatusProbe

logger = logging.getLogger(__name__)


class QueueDeck:
    """Owns one instance of every queuedeck service."""

    def __init__(
        self,
        crypto: CryptoService,
        *,
        settings: Settings | None = None,
        engine_factory: EngineFactory | None = None,
        probe: StatusProbe | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self.crypto = crypto
        self.registry = ConnectionRegistry(
            crypto, engine_factory=engine_factory, settings=self.settings
        )
        self.state = QueueStateService(self.settings)
        self.control = JobControlService()
        self.fleet = FleetService(self.registry, self.state, self.settings)
        self.probe = probe or StatusProbe(crypto, settings=self.settings)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        engine_factory: EngineFactory | None = None,
    ) -> QueueDeck:
        """Build the container from configuration.

        Raises:
            ConfigurationError: The encryption key is malformed, or missing while
                ``require_encryption_key`` is set.
        """
        settings = settings or default_settings
        crypto = CryptoService(
            settings.encryption_key, require_key=settings.require_encryption_key
        )
        return cls(crypto, settings=settings, engine_factory=engine_factory)

    def handle(self, queue_name: str, profile: ConnectionProfile) -> QueueHandle:
        """Shortcut for ``registry.resolve``."""
        return self.registry.resolve(queue_name, profile)

    async def aclose(self) -> None:
        await self.registry.aclose()
        logger.info("queuedeck shut down")

    async def __aenter__(self) -> QueueDeck:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
