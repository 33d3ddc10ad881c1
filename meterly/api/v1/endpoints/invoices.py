"""Invoice endpoints."""

from fastapi import APIRouter, Path

from meterly.api.deps import Inject
from meterly.domains.invoices.repository import InvoiceRepositoryProtocol
from meterly.domains.invoices.types import InvoiceNotFoundError
from meterly.schemas.invoice import Invoice

router = APIRouter()


@router.get("/{invoice_id}", response_model=Invoice)
async def read_invoice(
    invoice_id: str = Path(..., description="Invoice id"),
    invoices: InvoiceRepositoryProtocol = Inject(InvoiceRepositoryProtocol),
) -> Invoice:
    """Fetch an invoice (draft or finalized)."""
    invoice = await invoices.get(invoice_id)
    if invoice is None:
        raise InvoiceNotFoundError(invoice_id)
    return invoice
