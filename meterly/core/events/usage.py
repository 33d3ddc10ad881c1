"""Usage events.

ConsumptionRecordedEvent is published by the HTTP boundary after a tenant
consumes the metered API and is consumed by the UsageAggregator.
"""

from datetime import datetime, timezone
from typing import ClassVar, Optional

from pydantic import Field

from meterly.core.events.base import DomainEvent, EventPayload
from meterly.core.events.enums import EventType


class ConsumptionRecordedPayload(EventPayload):
    """One metered API request by a tenant."""

    tenant_id: str = Field(min_length=1)
    timestamp: datetime


class ConsumptionRecordedEvent(DomainEvent):
    """Emitted once per metered request.

    Consumers:
    - UsageAggregator: increments the tenant's counter for the current period
    """

    EXPECTED_TYPE: ClassVar[EventType] = EventType.CONSUMPTION_RECORDED

    event_type: EventType = EventType.CONSUMPTION_RECORDED
    payload: ConsumptionRecordedPayload

    @classmethod
    def record(
        cls, tenant_id: str, timestamp: Optional[datetime] = None
    ) -> "ConsumptionRecordedEvent":
        """Create an event for a request consumed now (or at ``timestamp``)."""
        return cls(
            payload=ConsumptionRecordedPayload(
                tenant_id=tenant_id,
                timestamp=timestamp or datetime.now(timezone.utc),
            )
        )
