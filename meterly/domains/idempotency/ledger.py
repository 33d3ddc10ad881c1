"""Key-value backed idempotency ledger.

Processed-event records live in the ``processed_events`` table, claims in
``event_claims``. Both are keyed ``<consumer>#<event_id>``.

Claims are leases: a claim carries an expiry, and a claim whose holder
crashed can be taken over once it has expired. Takeover is a conditional
update on the exact claim that was observed, so two deliveries racing for
an expired claim cannot both win.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from meterly.core.constants.tables import EVENT_CLAIMS, PROCESSED_EVENTS
from meterly.core.exceptions import ConditionFailedError
from meterly.core.protocols.kv_store import ConditionalPut, KeyValueStore
from meterly.domains.idempotency.protocols import EventId, IdempotencyLedgerProtocol
from meterly.domains.idempotency.types import ProcessedEventRecord, ledger_key


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KeyValueIdempotencyLedger(IdempotencyLedgerProtocol):
    """Idempotency ledger for one consumer, stored in a KeyValueStore."""

    def __init__(
        self,
        store: KeyValueStore,
        consumer: str,
        claim_ttl_seconds: float = 300.0,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Initialize the ledger.

        Args:
            store: Backing key-value store.
            consumer: Name of the consumer this ledger belongs to.
            claim_ttl_seconds: Lease length of a processing claim.
            clock: Returns the current UTC time (injectable for tests).
        """
        self._store = store
        self.consumer = consumer
        self._claim_ttl = timedelta(seconds=claim_ttl_seconds)
        self._clock = clock or _utcnow

    def _key(self, event_id: EventId) -> str:
        return ledger_key(self.consumer, event_id)

    def _record(self, event_id: EventId) -> ProcessedEventRecord:
        return ProcessedEventRecord(
            event_id=event_id, consumer=self.consumer, processed_at=self._clock()
        )

    async def has_processed(self, event_id: EventId) -> bool:
        """Return True if the event was already processed by this consumer."""
        return await self._store.get(PROCESSED_EVENTS, self._key(event_id)) is not None

    async def mark_processed(self, event_id: EventId) -> ProcessedEventRecord:
        """Insert the processed record, or return the one already stored."""
        record = self._record(event_id)
        key = self._key(event_id)
        if await self._store.put_if_absent(PROCESSED_EVENTS, key, record.to_item()):
            return record
        existing = await self._store.get(PROCESSED_EVENTS, key)
        return ProcessedEventRecord.model_validate(existing) if existing else record

    def marker_for(self, event_id: EventId) -> ConditionalPut:
        """The processed record as a marker for ``KeyValueStore.atomic_increment``."""
        return ConditionalPut(
            table=PROCESSED_EVENTS,
            key=self._key(event_id),
            item=self._record(event_id).to_item(),
        )

    async def claim(self, event_id: EventId, owner: str) -> bool:
        """Take the processing lease for an event.

        Returns:
            True if ``owner`` now holds the lease.
        """
        key = self._key(event_id)
        now = self._clock()
        lease = {
            "eventId": str(event_id),
            "owner": owner,
            "expiresAt": (now + self._claim_ttl).timestamp(),
        }
        if await self._store.put_if_absent(EVENT_CLAIMS, key, lease):
            return True

        current = await self._store.get(EVENT_CLAIMS, key)
        if current is None:
            # Released between the insert and the read.
            return await self._store.put_if_absent(EVENT_CLAIMS, key, lease)
        if current.get("owner") == owner:
            return True
        if float(current.get("expiresAt", 0)) > now.timestamp():
            return False

        try:
            await self._store.update(
                EVENT_CLAIMS,
                key,
                lease,
                condition={"owner": current.get("owner"), "expiresAt": current.get("expiresAt")},
            )
        except ConditionFailedError:
            return False
        return True

    async def release(self, event_id: EventId, owner: str) -> None:
        """Delete the lease if ``owner`` still holds it."""
        await self._store.delete(EVENT_CLAIMS, self._key(event_id), condition={"owner": owner})
