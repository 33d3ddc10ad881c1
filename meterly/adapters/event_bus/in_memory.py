"""In-memory event bus implementation.

Fans events out to subscribers in-process. Every published event is appended
to an event log before delivery. Failed deliveries are retried per
subscriber with exponential backoff up to the delivery ceiling; exhausted
deliveries are moved to a dead-letter list.

Used for local development and integration tests. RedisStreamEventBus is the
durable, multi-process transport.
"""

import asyncio
import fnmatch
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from meterly.core.exceptions import InvalidInputError
from meterly.core.protocols.event_bus import Delivery

if TYPE_CHECKING:
    from meterly.core.events.base import DomainEvent
    from meterly.core.protocols.event_bus import EventHandler

# Use standard logging to avoid circular import with meterly.core.logging
logger = logging.getLogger(__name__)


@dataclass
class DeadLetter:
    """A delivery that exhausted its attempts."""

    event: "DomainEvent"
    pattern: str
    handler_name: str
    attempts: int
    error: BaseException
    failed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _handler_name(handler: "EventHandler") -> str:
    owner = getattr(handler, "__self__", None)
    if owner is not None:
        return f"{type(owner).__name__}.{handler.__name__}"
    return getattr(handler, "__qualname__", repr(handler))


class InMemoryEventBus:
    """In-memory event bus with pattern-based subscriptions.

    Implements the EventBus protocol. Events are delivered to all matching
    subscribers concurrently; a failing subscriber never affects the others.

    Usage:
        bus = InMemoryEventBus(max_deliveries=3)
        bus.subscribe("InvoiceCreated", renderer.handle)
        bus.subscribe("Invoice*", audit_handler)
        await bus.publish(InvoiceCreatedEvent.for_invoice(...))
    """

    def __init__(
        self,
        max_deliveries: int = 3,
        retry_min_wait: float = 0.5,
        retry_max_wait: float = 10.0,
    ) -> None:
        """Initialize the event bus.

        Args:
            max_deliveries: Delivery attempts per subscriber before dead-lettering.
            retry_min_wait: Lower bound of the exponential backoff, in seconds.
            retry_max_wait: Upper bound of the exponential backoff, in seconds.
        """
        self._subscribers: list[tuple[str, "EventHandler"]] = []
        self._max_deliveries = max_deliveries
        self._retry_min_wait = retry_min_wait
        self._retry_max_wait = retry_max_wait
        self.event_log: list["DomainEvent"] = []
        self.dead_letters: list[DeadLetter] = []

    def subscribe(self, event_pattern: str, handler: "EventHandler") -> None:
        """Register a handler for events matching the pattern.

        Args:
            event_pattern: Glob pattern (e.g., 'Invoice*', 'InvoiceReady').
            handler: Async function to call when matching events are published.
        """
        self._subscribers.append((event_pattern, handler))
        logger.debug(f"EventBus: subscribed {_handler_name(handler)} to '{event_pattern}'")

    async def publish(self, event: "DomainEvent") -> None:
        """Record the event, then deliver it to all matching subscribers.

        Args:
            event: The domain event to publish.
        """
        self.event_log.append(event)

        event_type = event.event_type.value
        matching = [
            (pattern, handler)
            for pattern, handler in self._subscribers
            if fnmatch.fnmatchcase(event_type, pattern)
        ]

        if not matching:
            logger.warning(f"EventBus: no subscribers for '{event_type}'")
            return

        logger.debug(f"EventBus: publishing '{event_type}' to {len(matching)} subscribers")

        # Fan out to all matching handlers concurrently
        results = await asyncio.gather(
            *[self._deliver(event, pattern, handler) for pattern, handler in matching],
            return_exceptions=True,
        )

        for result in results:
            if isinstance(result, Exception):
                logger.error(
                    f"EventBus: unexpected delivery failure for '{event_type}': {result}",
                    exc_info=result,
                )

    async def _deliver(self, event: "DomainEvent", pattern: str, handler: "EventHandler") -> None:
        """Deliver one event to one handler, redelivering on failure."""
        name = _handler_name(handler)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_deliveries),
            wait=wait_exponential(min=self._retry_min_wait, max=self._retry_max_wait),
            retry=retry_if_not_exception_type(InvalidInputError),
        )
        attempts = 0
        try:
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    delivery = Delivery(attempt=attempts, max_attempts=self._max_deliveries)
                    try:
                        await handler(event, delivery)
                    except Exception as e:
                        logger.error(
                            f"EventBus: {name} failed on '{event.event_type.value}' "
                            f"{event.event_id} (attempt {attempts}/{self._max_deliveries}): {e}",
                            exc_info=e,
                        )
                        raise
        except RetryError as e:
            self._dead_letter(event, pattern, name, attempts, e.last_attempt.exception())
        except Exception as e:
            self._dead_letter(event, pattern, name, attempts, e)

    def _dead_letter(
        self,
        event: "DomainEvent",
        pattern: str,
        handler_name: str,
        attempts: int,
        error: Optional[BaseException],
    ) -> None:
        logger.error(
            f"EventBus: dead-lettering '{event.event_type.value}' {event.event_id} "
            f"for {handler_name} after {attempts} attempt(s): {error}"
        )
        self.dead_letters.append(
            DeadLetter(
                event=event,
                pattern=pattern,
                handler_name=handler_name,
                attempts=attempts,
                error=error,
            )
        )
