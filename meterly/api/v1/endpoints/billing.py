"""Billing endpoints: operator-triggered billing runs."""

from typing import Optional

from fastapi import APIRouter

from meterly.api.deps import Inject
from meterly.domains.billing.scheduler import BillingScheduler
from meterly.schemas.billing import BillingRunRequest, BillingRunResult

router = APIRouter()


@router.post("/runs", response_model=BillingRunResult)
async def run_billing(
    request: Optional[BillingRunRequest] = None,
    scheduler: BillingScheduler = Inject(BillingScheduler),
) -> BillingRunResult:
    """Run billing for a period (default: the previous month).

    Safe to repeat: a completed period is not billed twice.
    """
    return await scheduler.run(period=request.period if request else None)
