"""Invoice repository over the key-value store."""

from datetime import datetime
from typing import Optional, Protocol

from meterly.core.constants.tables import INVOICES
from meterly.core.protocols.kv_store import KeyValueStore
from meterly.schemas.invoice import Invoice, InvoiceStatus


class InvoiceRepositoryProtocol(Protocol):
    """Data access for invoices."""

    async def get(self, invoice_id: str) -> Optional[Invoice]:
        """Fetch an invoice, or None."""
        ...

    async def create_draft(self, invoice: Invoice) -> bool:
        """Insert a draft invoice. False if the invoice id already exists."""
        ...

    async def finalize(self, invoice_id: str, pdf_url: str, finalized_at: datetime) -> Invoice:
        """Move a draft to finalized with its PDF URL.

        Raises:
            ConditionFailedError: If the invoice is missing or not a draft.
        """
        ...


class InvoiceRepository(InvoiceRepositoryProtocol):
    """Invoices live in the ``invoices`` table keyed by invoice id."""

    def __init__(self, store: KeyValueStore) -> None:
        """Initialize with the backing store."""
        self._store = store

    async def get(self, invoice_id: str) -> Optional[Invoice]:
        """Fetch an invoice, or None."""
        item = await self._store.get(INVOICES, invoice_id)
        return Invoice.model_validate(item) if item else None

    async def create_draft(self, invoice: Invoice) -> bool:
        """Conditional insert of a draft invoice."""
        return await self._store.put_if_absent(INVOICES, invoice.invoice_id, invoice.to_item())

    async def finalize(self, invoice_id: str, pdf_url: str, finalized_at: datetime) -> Invoice:
        """Conditional draft -> finalized transition."""
        item = await self._store.update(
            INVOICES,
            invoice_id,
            {
                "status": InvoiceStatus.FINALIZED.value,
                "pdfUrl": pdf_url,
                "finalizedAt": finalized_at.isoformat(),
            },
            condition={"status": InvoiceStatus.DRAFT.value},
        )
        return Invoice.model_validate(item)
