"""Event type enum: the vocabulary of the event bus.

Every domain event uses one of these values for its ``event_type`` field.
The set is closed; the bus filters subscriptions on these values.

When adding a new event type:
1. Add it here
2. Define its payload and event class in core/events/
3. Register the class in core/events/codec.py
"""

from enum import Enum


class EventType(str, Enum):
    """Pipeline event types."""

    CONSUMPTION_RECORDED = "ConsumptionRecorded"
    INVOICE_CREATED = "InvoiceCreated"
    INVOICE_READY = "InvoiceReady"


EVENT_SCHEMA_VERSION = "1.0"
