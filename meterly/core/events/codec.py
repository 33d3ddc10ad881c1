"""Wire codec for domain events.

Transports carry events as camelCase JSON. ``parse_event`` restores the
concrete event class from the ``eventType`` attribute.
"""

import json
from typing import Any, Union

from pydantic import ValidationError

from meterly.core.events.base import DomainEvent
from meterly.core.events.enums import EventType
from meterly.core.events.invoice import InvoiceCreatedEvent, InvoiceReadyEvent
from meterly.core.events.usage import ConsumptionRecordedEvent
from meterly.core.exceptions import InvalidInputError

EVENT_CLASSES: dict[EventType, type[DomainEvent]] = {
    EventType.CONSUMPTION_RECORDED: ConsumptionRecordedEvent,
    EventType.INVOICE_CREATED: InvoiceCreatedEvent,
    EventType.INVOICE_READY: InvoiceReadyEvent,
}


class UnknownEventTypeError(InvalidInputError):
    """Raised when a message carries an event type outside the closed set."""

    def __init__(self, event_type: Any):
        """Initialize with the offending event type."""
        self.event_type = event_type
        super().__init__(f"Unknown event type: {event_type!r}")


class MalformedEventError(InvalidInputError):
    """Raised when a message cannot be decoded into a domain event."""


def parse_event(raw: Union[str, bytes, dict[str, Any]]) -> DomainEvent:
    """Decode a wire message into its concrete event class.

    Args:
        raw: JSON text, JSON bytes, or an already-decoded dict.

    Returns:
        The typed domain event.

    Raises:
        UnknownEventTypeError: If ``eventType`` is missing or unknown.
        MalformedEventError: If the message is not valid JSON or fails validation.
    """
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedEventError(f"Event is not valid JSON: {e}") from e
    else:
        data = raw

    if not isinstance(data, dict):
        raise MalformedEventError("Event must be a JSON object")

    type_value = data.get("eventType", data.get("event_type"))
    try:
        event_type = EventType(type_value)
    except ValueError as e:
        raise UnknownEventTypeError(type_value) from e

    try:
        return EVENT_CLASSES[event_type].model_validate(data)
    except ValidationError as e:
        raise MalformedEventError(f"Invalid {event_type.value} event: {e}") from e
