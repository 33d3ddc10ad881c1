"""Idempotent consumer base class.

Every pipeline stage that consumes events subclasses ``IdempotentConsumer``
and implements ``process``. ``handle`` wraps it in the ledger protocol:

1. Already processed? Acknowledge as success, no side effects.
2. Claim the event. If another delivery holds a live claim, raise
   EventInFlightError so the transport redelivers later.
3. Re-check under the claim, run ``process``, mark the event processed.
4. Release the claim, on failure too.

Errors raised by ``process`` propagate unchanged; the event stays unmarked
and the bus redelivers it.
"""

from abc import ABC, abstractmethod
from typing import ClassVar, Optional
from uuid import uuid4

from meterly.core.events.base import DomainEvent
from meterly.core.logging import ContextualLogger, logger
from meterly.core.protocols.event_bus import Delivery
from meterly.domains.idempotency.protocols import IdempotencyLedgerProtocol
from meterly.domains.idempotency.types import EventInFlightError


class IdempotentConsumer(ABC):
    """Base class for event consumers with at-least-once input."""

    EVENT_PATTERNS: ClassVar[list[str]] = []

    def __init__(self, ledger: IdempotencyLedgerProtocol) -> None:
        """Initialize with this consumer's idempotency ledger."""
        self._ledger = ledger

    @property
    def name(self) -> str:
        """Consumer name used in logs and ledger keys."""
        return type(self).__name__

    async def handle(self, event: DomainEvent, delivery: Optional[Delivery] = None) -> None:
        """Process one delivery of ``event`` at most once per event id."""
        log = logger.with_context(
            consumer=self.name,
            event_id=str(event.event_id),
            event_type=event.event_type.value,
        )
        if delivery is not None:
            log = log.with_context(attempt=f"{delivery.attempt}/{delivery.max_attempts}")

        if await self._ledger.has_processed(event.event_id):
            log.info("Duplicate delivery of an already processed event, skipping")
            return

        owner = str(uuid4())
        if not await self._ledger.claim(event.event_id, owner):
            log.info("Event is claimed by a concurrent delivery")
            raise EventInFlightError(event.event_id, self.name)

        try:
            if await self._ledger.has_processed(event.event_id):
                log.info("Event was processed while waiting for the claim, skipping")
                return
            await self.process(event, log, delivery)
            await self._ledger.mark_processed(event.event_id)
        finally:
            await self._ledger.release(event.event_id, owner)

    @abstractmethod
    async def process(
        self, event: DomainEvent, log: ContextualLogger, delivery: Optional[Delivery]
    ) -> None:
        """Run the side effect for a not-yet-processed event."""
