"""Tenant endpoints: registration, lookup, consumption and usage."""

from fastapi import APIRouter, Path

from meterly.api.deps import Inject
from meterly.core.periods import parse_period
from meterly.domains.tenants.service import TenantService
from meterly.domains.usage.recorder import ConsumptionRecorder
from meterly.domains.usage.repository import UsageRepositoryProtocol
from meterly.schemas.tenant import Tenant, TenantCreate
from meterly.schemas.usage import ConsumptionAccepted, UsageCounter

router = APIRouter()


@router.post("", response_model=Tenant, status_code=201)
async def create_tenant(
    tenant_in: TenantCreate,
    tenants: TenantService = Inject(TenantService),
) -> Tenant:
    """Register a tenant on the FREE plan."""
    return await tenants.create(tenant_in)


@router.get("/{tenant_id}", response_model=Tenant)
async def read_tenant(
    tenant_id: str = Path(..., description="Tenant id"),
    tenants: TenantService = Inject(TenantService),
) -> Tenant:
    """Fetch a tenant."""
    return await tenants.get(tenant_id)


@router.post("/{tenant_id}/consumption", response_model=ConsumptionAccepted, status_code=202)
async def record_consumption(
    tenant_id: str = Path(..., description="Tenant id"),
    recorder: ConsumptionRecorder = Inject(ConsumptionRecorder),
) -> ConsumptionAccepted:
    """Record one metered API request.

    Accepted for asynchronous aggregation; the response carries the id of
    the published ConsumptionRecorded event.
    """
    event_id = await recorder.record(tenant_id)
    return ConsumptionAccepted(event_id=event_id)


@router.get("/{tenant_id}/usage/{period}", response_model=UsageCounter)
async def read_usage(
    tenant_id: str = Path(..., description="Tenant id"),
    period: str = Path(..., description="Calendar month, YYYY-MM"),
    tenants: TenantService = Inject(TenantService),
    usage: UsageRepositoryProtocol = Inject(UsageRepositoryProtocol),
) -> UsageCounter:
    """Read a tenant's request count for a month (0 when nothing was recorded)."""
    parse_period(period)
    await tenants.get(tenant_id)
    return await usage.get(tenant_id, period)
