"""Invoice renderer: consumes InvoiceCreated, stores the PDF, finalizes the invoice.

Ordering is what makes the stage safe to replay:

1. render and upload the PDF (a failure leaves the invoice in draft and
   publishes nothing; the error propagates and the bus redelivers);
2. conditionally move the invoice draft -> finalized with the PDF URL;
3. publish InvoiceReady with an event id derived from the invoice id.

A redelivery that finds the invoice already finalized (crash between 2 and
3) skips rendering and re-publishes InvoiceReady with the stored URL.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

from meterly.core.events.enums import EventType
from meterly.core.events.invoice import InvoiceCreatedEvent, InvoiceReadyEvent
from meterly.core.exceptions import ConditionFailedError
from meterly.core.logging import ContextualLogger
from meterly.core.protocols.blob_store import BlobStore
from meterly.core.protocols.documents import InvoiceDocumentRenderer
from meterly.core.protocols.event_bus import Delivery, EventBus
from meterly.domains.idempotency.consumer import IdempotentConsumer
from meterly.domains.idempotency.protocols import IdempotencyLedgerProtocol
from meterly.domains.invoices.repository import InvoiceRepositoryProtocol
from meterly.domains.invoices.types import (
    InvoiceNotFoundError,
    build_invoice_document,
    invoice_object_key,
)
from meterly.domains.tenants.repository import TenantRepositoryProtocol
from meterly.domains.tenants.types import TenantNotFoundError
from meterly.schemas.invoice import Invoice, InvoiceStatus


class InvoiceRenderer(IdempotentConsumer):
    """Renders draft invoices to PDF and finalizes them."""

    EVENT_PATTERNS = [EventType.INVOICE_CREATED.value]

    def __init__(
        self,
        ledger: IdempotencyLedgerProtocol,
        invoice_repo: InvoiceRepositoryProtocol,
        tenant_repo: TenantRepositoryProtocol,
        document_renderer: InvoiceDocumentRenderer,
        blob_store: BlobStore,
        event_bus: EventBus,
        bucket: str,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Initialize the renderer.

        Args:
            ledger: This consumer's idempotency ledger.
            invoice_repo: Invoice persistence.
            tenant_repo: Tenant lookup (for the name printed on the invoice).
            document_renderer: Lays the invoice out as PDF bytes.
            blob_store: Durable storage for the PDF.
            event_bus: Where InvoiceReady is published.
            bucket: Blob bucket for invoice PDFs.
            clock: Returns the current UTC time (injectable for tests).
        """
        super().__init__(ledger)
        self._invoices = invoice_repo
        self._tenants = tenant_repo
        self._documents = document_renderer
        self._blobs = blob_store
        self._bus = event_bus
        self._bucket = bucket
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def process(
        self,
        event: InvoiceCreatedEvent,
        log: ContextualLogger,
        delivery: Optional[Delivery],
    ) -> None:
        """Render, store, finalize, announce."""
        invoice_id = event.payload.invoice_id
        log = log.with_context(invoice_id=invoice_id, tenant_id=event.payload.tenant_id)

        invoice = await self._invoices.get(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)

        if invoice.status == InvoiceStatus.FINALIZED and invoice.pdf_url:
            log.info("Invoice already finalized, re-publishing InvoiceReady")
            await self._publish_ready(invoice)
            return

        tenant = await self._tenants.get(invoice.tenant_id)
        if tenant is None:
            raise TenantNotFoundError(invoice.tenant_id)

        now = self._clock()
        document = build_invoice_document(invoice, tenant, generated_at=now)
        pdf = await self._documents.render(document)
        pdf_url = await self._blobs.upload(
            self._bucket,
            invoice_object_key(invoice_id),
            pdf,
            self._documents.content_type,
        )
        log.debug(f"Stored invoice PDF at {pdf_url}")

        try:
            invoice = await self._invoices.finalize(invoice_id, pdf_url, finalized_at=now)
        except ConditionFailedError:
            # A concurrent delivery finalized it first; announce what it stored.
            invoice = await self._invoices.get(invoice_id)
            if invoice is None:
                raise InvoiceNotFoundError(invoice_id)
            log.info("Invoice was finalized concurrently, using stored PDF URL")

        await self._publish_ready(invoice)
        log.info("Invoice finalized")

    async def _publish_ready(self, invoice: Invoice) -> None:
        await self._bus.publish(
            InvoiceReadyEvent.for_invoice(
                invoice_id=invoice.invoice_id,
                tenant_id=invoice.tenant_id,
                pdf_url=invoice.pdf_url,
            )
        )
