"""EventBus protocol for domain event fan-out.

The event bus decouples pipeline stages. Stages never call each other;
they publish events to the bus and subscribers react.

Usage:
    # A stage publishes
    await event_bus.publish(InvoiceCreatedEvent.for_invoice(...))

    # Subscribers react (registered at startup by the container factory)
    event_bus.subscribe("InvoiceCreated", renderer.handle)

Delivery contract:
- ``publish`` durably records the event before returning.
- Every subscriber matching the event type receives the event at least once.
- No ordering is guaranteed, within or across event types.
- A failing subscriber does not affect other subscribers. The bus redelivers
  failed deliveries up to its ceiling, then dead-letters the message.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol, runtime_checkable

from meterly.core.events.base import DomainEvent


@dataclass(frozen=True)
class Delivery:
    """Metadata about one delivery of an event to one subscriber.

    Attributes:
        attempt: 1-based delivery attempt number.
        max_attempts: The transport's redelivery ceiling.
    """

    attempt: int = 1
    max_attempts: int = 1

    @property
    def is_last_attempt(self) -> bool:
        """True when a failure of this delivery will dead-letter the message."""
        return self.attempt >= self.max_attempts


# Type alias for event handlers (async callables that receive an event and its delivery)
EventHandler = Callable[[DomainEvent, Optional[Delivery]], Awaitable[None]]


@runtime_checkable
class EventBus(Protocol):
    """Protocol for publishing domain events to multiple subscribers.

    The bus matches events to subscribers by glob pattern on event_type.
    An exact event type (e.g. 'InvoiceReady') matches only that type.
    """

    async def publish(self, event: DomainEvent) -> None:
        """Persist the event, then deliver it to all matching subscribers.

        Args:
            event: The domain event to publish.
        """
        ...

    def subscribe(self, event_pattern: str, handler: EventHandler) -> None:
        """Register a handler for events matching the pattern.

        Args:
            event_pattern: Glob pattern to match (e.g., 'InvoiceReady', 'Invoice*').
            handler: Async callable invoked for every matching delivery.
        """
        ...


@runtime_checkable
class EventSubscriber(Protocol):
    """A pipeline stage that consumes events from the bus."""

    EVENT_PATTERNS: list[str]

    async def handle(self, event: DomainEvent, delivery: Optional[Delivery] = None) -> None:
        """Handle one delivery of an event. Raising triggers redelivery."""
        ...
