"""Pydantic schemas shared by the domains and the HTTP boundary."""

from meterly.schemas.billing import (
    BillingRunCheckpoint,
    BillingRunRequest,
    BillingRunResult,
    BillingRunStatus,
)
from meterly.schemas.invoice import Invoice, InvoiceStatus
from meterly.schemas.tenant import Plan, Tenant, TenantCreate
from meterly.schemas.usage import ConsumptionAccepted, UsageCounter

__all__ = [
    "BillingRunCheckpoint",
    "BillingRunRequest",
    "BillingRunResult",
    "BillingRunStatus",
    "ConsumptionAccepted",
    "Invoice",
    "InvoiceStatus",
    "Plan",
    "Tenant",
    "TenantCreate",
    "UsageCounter",
]
