"""Domain events for the event bus."""

from meterly.core.events.base import DomainEvent, EventPayload, derive_event_id
from meterly.core.events.codec import (
    EVENT_CLASSES,
    MalformedEventError,
    UnknownEventTypeError,
    parse_event,
)
from meterly.core.events.enums import EVENT_SCHEMA_VERSION, EventType
from meterly.core.events.invoice import (
    InvoiceCreatedEvent,
    InvoiceCreatedPayload,
    InvoiceReadyEvent,
    InvoiceReadyPayload,
)
from meterly.core.events.usage import ConsumptionRecordedEvent, ConsumptionRecordedPayload

__all__ = [
    "EVENT_CLASSES",
    "EVENT_SCHEMA_VERSION",
    "ConsumptionRecordedEvent",
    "ConsumptionRecordedPayload",
    "DomainEvent",
    "EventPayload",
    "EventType",
    "InvoiceCreatedEvent",
    "InvoiceCreatedPayload",
    "InvoiceReadyEvent",
    "InvoiceReadyPayload",
    "MalformedEventError",
    "UnknownEventTypeError",
    "derive_event_id",
    "parse_event",
]
