"""Event bus adapters."""

from meterly.adapters.event_bus.in_memory import DeadLetter, InMemoryEventBus
from meterly.adapters.event_bus.redis_streams import RedisStreamEventBus

__all__ = ["DeadLetter", "InMemoryEventBus", "RedisStreamEventBus"]
