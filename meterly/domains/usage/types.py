"""Usage domain types and pure business logic. No IO."""

from typing import Optional

from meterly.schemas.tenant import Plan

# Monthly request allowance per plan. Exceeding it is logged, never enforced.
PLAN_REQUEST_LIMITS: dict[Plan, Optional[int]] = {
    Plan.FREE: 1000,
}

REQUEST_COUNT_FIELD = "requestCount"


def usage_key(tenant_id: str, period: str) -> str:
    """Key of the usage counter for a tenant and period."""
    return f"{tenant_id}#{period}"


def exceeds_plan_limit(plan: Plan, request_count: int) -> bool:
    """True if ``request_count`` is over the plan's allowance."""
    limit = PLAN_REQUEST_LIMITS.get(plan)
    return limit is not None and request_count > limit
