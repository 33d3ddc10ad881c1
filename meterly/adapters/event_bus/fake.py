"""Fake event bus for testing.

Stages under test publish into a list instead of triggering each other, so a
test drives one stage and inspects what it announced.
"""

from typing import TYPE_CHECKING, Union

from meterly.core.events.enums import EventType

if TYPE_CHECKING:
    from meterly.core.events.base import DomainEvent
    from meterly.core.protocols.event_bus import EventHandler

EventTypeLike = Union[str, EventType]


def _type_value(event_type: EventTypeLike) -> str:
    return event_type.value if isinstance(event_type, EventType) else event_type


class FakeEventBus:
    """Test implementation of EventBus.

    Usage:
        bus = FakeEventBus()
        await scheduler.run(period="2024-02")

        created = bus.assert_published(EventType.INVOICE_CREATED)
        assert created.payload.total_requests == 5
    """

    def __init__(self) -> None:
        """Initialize with nothing published."""
        self.events: list["DomainEvent"] = []
        self.subscriptions: list[tuple[str, "EventHandler"]] = []

    def subscribe(self, event_pattern: str, handler: "EventHandler") -> None:
        """Remember the subscription. Handlers are never invoked."""
        self.subscriptions.append((event_pattern, handler))

    async def publish(self, event: "DomainEvent") -> None:
        """Append the event to ``events``."""
        self.events.append(event)

    # Test helpers

    def get_events(self, event_type: EventTypeLike) -> list["DomainEvent"]:
        """Every published event of ``event_type``, in publish order."""
        wanted = _type_value(event_type)
        return [e for e in self.events if e.event_type.value == wanted]

    def get_event(self, event_type: EventTypeLike) -> "DomainEvent":
        """The first published event of ``event_type``."""
        return self.assert_published(event_type)

    def assert_published(self, event_type: EventTypeLike) -> "DomainEvent":
        """Fail unless ``event_type`` was published; return the first one."""
        matches = self.get_events(event_type)
        if not matches:
            seen = [e.event_type.value for e in self.events]
            raise AssertionError(f"No '{_type_value(event_type)}' event published (saw {seen})")
        return matches[0]

    def assert_not_published(self, event_type: EventTypeLike) -> None:
        """Fail if any ``event_type`` event was published."""
        count = len(self.get_events(event_type))
        if count:
            raise AssertionError(f"Expected no '{_type_value(event_type)}' events, got {count}")

    def clear(self) -> None:
        """Forget published events."""
        self.events.clear()
