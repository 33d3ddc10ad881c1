"""Plan pricing.

Each plan registers a pricing function from monthly request count to amount
due. Amounts are Decimal dollars in a single currency.
"""

from decimal import Decimal
from typing import Callable

from meterly.core.exceptions import InvalidInputError
from meterly.schemas.tenant import Plan

PricingFunction = Callable[[int], Decimal]


def free_plan_price(total_requests: int) -> Decimal:
    """FREE plan: nothing is ever charged."""
    return Decimal("0.00")


PRICING: dict[Plan, PricingFunction] = {
    Plan.FREE: free_plan_price,
}


def compute_amount(plan: Plan, total_requests: int) -> Decimal:
    """Amount due for ``total_requests`` on ``plan``.

    Raises:
        InvalidInputError: If no pricing function is registered for the plan.
    """
    try:
        pricing = PRICING[plan]
    except KeyError as e:
        raise InvalidInputError(f"No pricing registered for plan {plan}") from e
    return pricing(total_requests)
