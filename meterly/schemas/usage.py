"""Usage schemas."""

from uuid import UUID

from pydantic import Field

from meterly.schemas._base import CamelModel


class UsageCounter(CamelModel):
    """Request count for one tenant in one calendar month."""

    tenant_id: str
    period: str = Field(..., description="Calendar month, YYYY-MM")
    request_count: int = Field(0, ge=0)


class ConsumptionAccepted(CamelModel):
    """Response for an accepted consumption record."""

    event_id: UUID
