"""Queue engine boundary."""

from queuedeck.engine.protocol import EngineFactory, QueueEngine, parse_redis_url

__all__ = ["EngineFactory", "QueueEngine", "parse_redis_url"]
