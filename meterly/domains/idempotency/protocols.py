"""Idempotency ledger protocol."""

from typing import Protocol, Union, runtime_checkable
from uuid import UUID

from meterly.core.protocols.kv_store import ConditionalPut
from meterly.domains.idempotency.types import ProcessedEventRecord

EventId = Union[UUID, str]


@runtime_checkable
class IdempotencyLedgerProtocol(Protocol):
    """Durable set of event ids a consumer has processed.

    One ledger per consumer: the same event may be processed independently
    by every consumer subscribed to its type.
    """

    consumer: str

    async def has_processed(self, event_id: EventId) -> bool:
        """Return True if the event was already processed."""
        ...

    async def mark_processed(self, event_id: EventId) -> ProcessedEventRecord:
        """Record the event as processed.

        Conditional insert: a second call returns the existing record
        unchanged.
        """
        ...

    def marker_for(self, event_id: EventId) -> ConditionalPut:
        """Build the ledger record as a marker for a transactional store write."""
        ...

    async def claim(self, event_id: EventId, owner: str) -> bool:
        """Take a short lease on the event. False if another owner holds a live one."""
        ...

    async def release(self, event_id: EventId, owner: str) -> None:
        """Drop the lease if ``owner`` still holds it."""
        ...
