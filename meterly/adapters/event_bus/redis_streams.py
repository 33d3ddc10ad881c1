"""Redis Streams event bus.

Durable, multi-process transport for domain events:

- One stream per event type (``<prefix>:events:<EventType>``). ``XADD`` is the
  durable publish.
- One consumer group per subscriber, so every subscriber sees every event of
  its types independently.
- A delivery is acknowledged (``XACK``) only after the handler succeeds.
  Failed messages stay pending and are reclaimed with ``XAUTOCLAIM`` once
  they have been idle for the visibility timeout.
- The delivery count of a pending message (``XPENDING``) is the attempt
  number. A message that fails its last attempt is copied to the
  dead-letter stream (``<prefix>:events:dead-letter``) and acknowledged.

Publishing processes only need ``publish``. Consuming processes (the worker)
call ``run`` after every subscriber is registered.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError, ResponseError

from meterly.core.events.codec import parse_event
from meterly.core.events.enums import EventType
from meterly.core.exceptions import InvalidInputError, StorageError
from meterly.core.protocols.event_bus import Delivery

if TYPE_CHECKING:
    from meterly.core.events.base import DomainEvent
    from meterly.core.protocols.event_bus import EventHandler

logger = logging.getLogger(__name__)

EVENT_FIELD = "event"


@dataclass(frozen=True)
class _Subscription:
    stream: str
    group: str
    handler: "EventHandler"


def _group_name(handler: "EventHandler") -> str:
    owner = getattr(handler, "__self__", None)
    if owner is not None:
        return type(owner).__name__
    return getattr(handler, "__qualname__", repr(handler))


class RedisStreamEventBus:
    """Redis Streams implementation of the EventBus protocol.

    The client must be created with ``decode_responses=True``.
    """

    def __init__(
        self,
        client: Redis,
        prefix: str = "meterly",
        consumer_name: str = "worker-1",
        max_deliveries: int = 3,
        visibility_timeout_seconds: float = 30.0,
        stream_maxlen: int = 100_000,
        block_ms: int = 5000,
        batch_size: int = 10,
    ) -> None:
        """Initialize the bus.

        Args:
            client: Redis client (``decode_responses=True``).
            prefix: Key prefix for streams.
            consumer_name: This process's name inside each consumer group.
            max_deliveries: Delivery attempts before a message is dead-lettered.
            visibility_timeout_seconds: Idle time after which a pending message
                is reclaimed for redelivery.
            stream_maxlen: Approximate cap on each event stream. XADD trims
                the oldest entries past it; the dead-letter stream is not trimmed.
            block_ms: How long one XREADGROUP call blocks waiting for messages.
            batch_size: Maximum messages fetched per read.
        """
        self._client = client
        self._prefix = prefix.rstrip(":")
        self._consumer = consumer_name
        self._max_deliveries = max_deliveries
        self._visibility_ms = int(visibility_timeout_seconds * 1000)
        self._stream_maxlen = stream_maxlen
        self._block_ms = block_ms
        self._batch_size = batch_size
        self._subscriptions: list[_Subscription] = []

    def stream_key(self, event_type: EventType) -> str:
        """Stream holding events of one type."""
        return f"{self._prefix}:events:{event_type.value}"

    @property
    def dead_letter_key(self) -> str:
        """Stream holding dead-lettered deliveries."""
        return f"{self._prefix}:events:dead-letter"

    def subscribe(
        self, event_pattern: str, handler: "EventHandler", group: Optional[str] = None
    ) -> None:
        """Register a handler for every event type matching the pattern.

        Args:
            event_pattern: Glob pattern matched against event type names.
            handler: Async callable invoked per delivery.
            group: Consumer group name. Defaults to the handler's owning class.
        """
        group = group or _group_name(handler)
        matched = [t for t in EventType if fnmatch.fnmatchcase(t.value, event_pattern)]
        if not matched:
            logger.warning(f"EventBus: pattern '{event_pattern}' matches no event type")
        for event_type in matched:
            self._subscriptions.append(
                _Subscription(stream=self.stream_key(event_type), group=group, handler=handler)
            )
            logger.debug(f"EventBus: group '{group}' subscribed to '{event_type.value}'")

    async def publish(self, event: "DomainEvent") -> None:
        """Append the event to its stream.

        Raises:
            StorageError: If the stream append fails.
        """
        try:
            message_id = await self._client.xadd(
                self.stream_key(event.event_type),
                {EVENT_FIELD: event.to_json()},
                maxlen=self._stream_maxlen,
                approximate=True,
            )
        except RedisError as e:
            raise StorageError("redis", f"publish {event.event_type.value} failed: {e}") from e
        logger.debug(f"EventBus: appended {event.event_type.value} {event.event_id} as {message_id}")

    async def ensure_groups(self) -> None:
        """Create every consumer group (and its stream) if missing."""
        for sub in self._subscriptions:
            try:
                await self._client.xgroup_create(sub.stream, sub.group, id="0", mkstream=True)
            except ResponseError as e:
                if "BUSYGROUP" not in str(e):
                    raise

    async def run(self, stop: asyncio.Event) -> None:
        """Consume every subscription until ``stop`` is set."""
        await self.ensure_groups()
        logger.info(
            f"EventBus: consumer '{self._consumer}' running {len(self._subscriptions)} subscriptions"
        )
        await asyncio.gather(*[self._consume(sub, stop) for sub in self._subscriptions])

    async def _consume(self, sub: _Subscription, stop: asyncio.Event) -> None:
        while not stop.is_set():
            try:
                await self.poll(sub)
            except RedisError as e:
                logger.error(f"EventBus: polling {sub.stream}/{sub.group} failed: {e}", exc_info=e)
                await asyncio.sleep(1.0)

    async def poll(self, sub: _Subscription) -> int:
        """Reclaim stale messages, then read new ones. Returns messages handled."""
        handled = 0
        reclaimed = await self._client.xautoclaim(
            sub.stream,
            sub.group,
            self._consumer,
            min_idle_time=self._visibility_ms,
            start_id="0-0",
            count=self._batch_size,
        )
        for message_id, fields in reclaimed[1]:
            if fields:
                await self._process(sub, message_id, fields)
                handled += 1

        response = await self._client.xreadgroup(
            sub.group,
            self._consumer,
            {sub.stream: ">"},
            count=self._batch_size,
            block=self._block_ms,
        )
        for _stream, messages in response or []:
            for message_id, fields in messages:
                await self._process(sub, message_id, fields)
                handled += 1
        return handled

    async def _delivery_count(self, sub: _Subscription, message_id: str) -> int:
        pending = await self._client.xpending_range(
            sub.stream, sub.group, min=message_id, max=message_id, count=1
        )
        if not pending:
            return 1
        return int(pending[0]["times_delivered"])

    async def _process(self, sub: _Subscription, message_id: str, fields: dict[str, Any]) -> None:
        attempt = await self._delivery_count(sub, message_id)
        raw = fields.get(EVENT_FIELD)

        if attempt > self._max_deliveries:
            await self._dead_letter(sub, message_id, raw, attempt - 1, "delivery ceiling exceeded")
            return

        try:
            event = parse_event(raw)
        except InvalidInputError as e:
            logger.error(f"EventBus: undecodable message {message_id} on {sub.stream}: {e}")
            await self._dead_letter(sub, message_id, raw, attempt, str(e))
            return

        delivery = Delivery(attempt=attempt, max_attempts=self._max_deliveries)
        try:
            await sub.handler(event, delivery)
        except Exception as e:
            logger.error(
                f"EventBus: {sub.group} failed on '{event.event_type.value}' {event.event_id} "
                f"(attempt {attempt}/{self._max_deliveries}): {e}",
                exc_info=e,
            )
            if delivery.is_last_attempt or isinstance(e, InvalidInputError):
                await self._dead_letter(sub, message_id, raw, attempt, str(e))
            return

        await self._client.xack(sub.stream, sub.group, message_id)

    async def _dead_letter(
        self,
        sub: _Subscription,
        message_id: str,
        raw: Optional[str],
        attempts: int,
        reason: str,
    ) -> None:
        logger.error(
            f"EventBus: dead-lettering {message_id} from {sub.stream} "
            f"for {sub.group} after {attempts} attempt(s): {reason}"
        )
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.xadd(
                self.dead_letter_key,
                {
                    EVENT_FIELD: raw or "",
                    "stream": sub.stream,
                    "group": sub.group,
                    "messageId": message_id,
                    "attempts": attempts,
                    "reason": reason,
                    "failedAt": datetime.now(timezone.utc).isoformat(),
                },
            )
            pipe.xack(sub.stream, sub.group, message_id)
            await pipe.execute()
