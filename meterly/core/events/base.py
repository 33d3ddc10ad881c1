"""Base class for all domain events.

Enforces that every event is a validated, frozen Pydantic model carrying the
envelope the EventBus protocol requires: a globally unique ``event_id``, the
``event_type`` used for routing, a schema ``version``, ``occurred_at`` and a
typed ``payload``.

The wire form is camelCase JSON (``eventId``, ``eventType``, ``occurredAt``);
Python code uses the snake_case attribute names.
"""

from datetime import datetime, timezone
from typing import Any, ClassVar, Optional, Union
from uuid import UUID, uuid4, uuid5

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from meterly.core.events.enums import EVENT_SCHEMA_VERSION, EventType

# Namespace for event ids derived from a cause (see ``derive_event_id``).
EVENT_ID_NAMESPACE = UUID("5f1c2a0e-7d5b-4c1e-9a4f-3b8e6d2c9a10")


class EventPayload(BaseModel):
    """Base for event payloads: frozen, camelCase on the wire."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class DomainEvent(BaseModel):
    """Base for all domain events.

    Subclasses narrow ``event_type`` to a single literal and ``payload`` to
    their payload model.

    ``event_id`` is generated once when the event is created and is carried
    unchanged through every redelivery; consumers deduplicate on it.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    # Set by subclasses; a subclass only carries its own event type.
    EXPECTED_TYPE: ClassVar[Optional[EventType]] = None

    event_id: UUID = Field(default_factory=uuid4)
    event_type: EventType
    version: str = EVENT_SCHEMA_VERSION
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    payload: EventPayload

    @model_validator(mode="after")
    def check_event_type(self) -> "DomainEvent":
        """Reject an envelope whose type does not match the concrete class."""
        if self.EXPECTED_TYPE is not None and self.event_type != self.EXPECTED_TYPE:
            raise ValueError(
                f"{type(self).__name__} requires event_type {self.EXPECTED_TYPE.value}, "
                f"got {self.event_type.value}"
            )
        return self

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON-compatible wire form."""
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self) -> str:
        """Serialize to a camelCase JSON string."""
        return self.model_dump_json(by_alias=True)


def derive_event_id(cause: Union[UUID, str], event_type: EventType) -> UUID:
    """Derive a stable event id from the thing that caused the event.

    Events emitted by replayable state transitions (re-publishing a draft
    invoice, re-announcing a finalized one) reuse the same id on every replay,
    so downstream consumers recognise the replay as a duplicate.

    Args:
        cause: Identifier of the cause (invoice id, source event id, ...).
        event_type: Type of the derived event.

    Returns:
        A UUIDv5 unique to ``(cause, event_type)``.
    """
    return uuid5(EVENT_ID_NAMESPACE, f"{cause}:{event_type.value}")
