"""Billing domain types and pure logic."""

from uuid import UUID, uuid5

from meterly.core.exceptions import InvalidInputError

# Namespace for invoice ids derived from (tenant, period).
INVOICE_ID_NAMESPACE = UUID("9d3e6b7a-2c41-4f58-8a0d-6e1f5b2c7d34")


class OpenPeriodError(InvalidInputError):
    """Raised when billing is requested for a month that has not ended."""

    def __init__(self, period: str, current_period: str):
        """Initialize with the requested and the current period keys."""
        self.period = period
        self.current_period = current_period
        super().__init__(
            f"Period {period} is not closed yet (current period is {current_period})"
        )


def invoice_id_for(tenant_id: str, period: str) -> str:
    """Deterministic invoice id: one invoice per tenant and period."""
    return str(uuid5(INVOICE_ID_NAMESPACE, f"{tenant_id}#{period}"))
