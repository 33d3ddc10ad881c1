"""Idempotency domain types."""

from datetime import datetime, timezone
from typing import Optional, Union
from uuid import UUID

from pydantic import Field

from meterly.core.exceptions import TransientIOError
from meterly.schemas._base import CamelModel


class ProcessedEventRecord(CamelModel):
    """Proof that a consumer finished processing an event.

    Append-only: written once per (consumer, event) and never updated.
    """

    event_id: UUID
    consumer: Optional[str] = None
    processed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class EventInFlightError(TransientIOError):
    """Raised when another delivery of the same event holds a live claim.

    The transport redelivers later; by then the other delivery has either
    marked the event processed or its claim has expired.
    """

    def __init__(self, event_id: Union[UUID, str], consumer: Optional[str] = None):
        """Initialize with the contested event id."""
        self.event_id = event_id
        self.consumer = consumer
        super().__init__(
            f"Event {event_id} is already being processed"
            f"{f' by another {consumer} delivery' if consumer else ''}"
        )


def ledger_key(consumer: str, event_id: Union[UUID, str]) -> str:
    """Key of a processed-event record or claim for one consumer."""
    return f"{consumer}#{event_id}"
