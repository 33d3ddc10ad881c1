"""Invoice schemas."""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field

from meterly.schemas._base import CamelModel


class InvoiceStatus(str, Enum):
    """Invoice lifecycle. Transitions are forward-only: draft -> finalized."""

    DRAFT = "draft"
    FINALIZED = "finalized"


class Invoice(CamelModel):
    """An invoice for one tenant and one calendar month."""

    invoice_id: str
    tenant_id: str
    period: str = Field(..., description="Billed calendar month, YYYY-MM")
    period_start: date
    period_end: date
    total_requests: int = Field(..., ge=0)
    amount: Decimal
    status: InvoiceStatus = InvoiceStatus.DRAFT
    pdf_url: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finalized_at: Optional[datetime] = None
