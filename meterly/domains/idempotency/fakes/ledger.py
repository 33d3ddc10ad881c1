"""Fake idempotency ledger for testing.

Keeps processed ids and claims in memory and records every call.
"""

from __future__ import annotations

from datetime import datetime, timezone

from meterly.core.constants.tables import PROCESSED_EVENTS
from meterly.core.protocols.kv_store import ConditionalPut
from meterly.domains.idempotency.protocols import EventId, IdempotencyLedgerProtocol
from meterly.domains.idempotency.types import ProcessedEventRecord, ledger_key


class FakeIdempotencyLedger(IdempotencyLedgerProtocol):
    """Test implementation of IdempotencyLedgerProtocol.

    Usage:
        ledger = FakeIdempotencyLedger()
        ledger.seed_processed(event.event_id)
        await consumer.handle(event)

        assert ledger.claims == {}
    """

    def __init__(self, consumer: str = "test-consumer") -> None:
        """Initialize empty state."""
        self.consumer = consumer
        self.processed: dict[str, ProcessedEventRecord] = {}
        self.claims: dict[str, str] = {}
        self.mark_calls: list[str] = []

    async def has_processed(self, event_id: EventId) -> bool:
        """Check the in-memory set."""
        return str(event_id) in self.processed

    async def mark_processed(self, event_id: EventId) -> ProcessedEventRecord:
        """Record once; return the existing record on repeat calls."""
        self.mark_calls.append(str(event_id))
        return self.processed.setdefault(
            str(event_id),
            ProcessedEventRecord(
                event_id=event_id,
                consumer=self.consumer,
                processed_at=datetime.now(timezone.utc),
            ),
        )

    def marker_for(self, event_id: EventId) -> ConditionalPut:
        """Build a marker like the real ledger does."""
        record = ProcessedEventRecord(event_id=event_id, consumer=self.consumer)
        return ConditionalPut(PROCESSED_EVENTS, ledger_key(self.consumer, event_id), record.to_item())

    async def claim(self, event_id: EventId, owner: str) -> bool:
        """Grant the claim unless a different owner holds it."""
        holder = self.claims.setdefault(str(event_id), owner)
        return holder == owner

    async def release(self, event_id: EventId, owner: str) -> None:
        """Drop the claim if held by ``owner``."""
        if self.claims.get(str(event_id)) == owner:
            del self.claims[str(event_id)]

    # Test helpers

    def seed_processed(self, event_id: EventId) -> None:
        """Mark an event processed without a call being recorded."""
        self.processed[str(event_id)] = ProcessedEventRecord(event_id=event_id, consumer=self.consumer)
