"""Invoice rendering types.

``InvoiceDocument`` is the renderer-independent content of an invoice PDF.
Building it is a pure function of the invoice, the tenant and a clock, so
the layout adapter only decides where each line goes on the page.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from meterly.core.exceptions import NotFoundException
from meterly.schemas.invoice import Invoice
from meterly.schemas.tenant import Tenant

INVOICE_TITLE = "INVOICE"
PDF_CONTENT_TYPE = "application/pdf"


class InvoiceNotFoundError(NotFoundException):
    """Raised when an invoice referenced by an event or request does not exist."""

    def __init__(self, invoice_id: str):
        """Initialize with the missing invoice id."""
        self.invoice_id = invoice_id
        super().__init__(f"Invoice {invoice_id} not found")


def format_amount(amount: Decimal) -> str:
    """Format a monetary amount as dollars with two decimals (``$12.50``)."""
    cents = Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"${cents:,.2f}"


def invoice_object_key(invoice_id: str) -> str:
    """Blob key under which an invoice PDF is stored."""
    return f"invoices/{invoice_id}.pdf"


@dataclass(frozen=True)
class InvoiceDocument:
    """The text content of a rendered invoice, line by line."""

    title: str
    invoice_id: str
    tenant_name: str
    period_start: str
    period_end: str
    total_requests: int
    amount: str
    generated_at: str

    def lines(self) -> list[str]:
        """Body lines in print order (the title is rendered separately)."""
        return [
            f"Invoice ID: {self.invoice_id}",
            f"Tenant: {self.tenant_name}",
            f"Period: {self.period_start} to {self.period_end}",
            f"Total API Requests: {self.total_requests}",
            f"Amount: {self.amount}",
            f"Generated on: {self.generated_at}",
        ]


def build_invoice_document(
    invoice: Invoice, tenant: Tenant, generated_at: Optional[datetime] = None
) -> InvoiceDocument:
    """Assemble the document content for an invoice."""
    generated_at = generated_at or datetime.now(timezone.utc)
    return InvoiceDocument(
        title=INVOICE_TITLE,
        invoice_id=invoice.invoice_id,
        tenant_name=tenant.name,
        period_start=invoice.period_start.isoformat(),
        period_end=invoice.period_end.isoformat(),
        total_requests=invoice.total_requests,
        amount=format_amount(invoice.amount),
        generated_at=generated_at.isoformat(),
    )
