"""Consumption recorder: the producing boundary of the pipeline.

Validates that the tenant exists before a ConsumptionRecorded event is
published, so malformed input never enters the pipeline.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from meterly.core.events.usage import ConsumptionRecordedEvent
from meterly.core.exceptions import InvalidInputError
from meterly.core.logging import logger
from meterly.core.protocols.event_bus import EventBus
from meterly.domains.tenants.repository import TenantRepositoryProtocol
from meterly.domains.tenants.types import TenantNotFoundError


class ConsumptionRecorder:
    """Publishes one ConsumptionRecorded event per metered request."""

    def __init__(self, tenant_repo: TenantRepositoryProtocol, event_bus: EventBus) -> None:
        """Initialize with tenant lookup and the bus."""
        self._tenants = tenant_repo
        self._bus = event_bus

    async def record(self, tenant_id: str, timestamp: Optional[datetime] = None) -> UUID:
        """Publish a consumption event and return its id.

        Raises:
            InvalidInputError: If the tenant id is blank.
            TenantNotFoundError: If the tenant does not exist.
        """
        if not tenant_id or not tenant_id.strip():
            raise InvalidInputError("Tenant id is required")
        if await self._tenants.get(tenant_id) is None:
            raise TenantNotFoundError(tenant_id)

        event = ConsumptionRecordedEvent.record(tenant_id, timestamp)
        await self._bus.publish(event)
        logger.with_context(tenant_id=tenant_id, event_id=str(event.event_id)).debug(
            "Recorded consumption"
        )
        return event.event_id
