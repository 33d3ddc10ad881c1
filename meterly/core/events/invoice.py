"""Invoice events.

InvoiceCreatedEvent is published by the BillingScheduler for every draft
invoice and consumed by the InvoiceRenderer. InvoiceReadyEvent is published
by the InvoiceRenderer once the PDF is stored and consumed by the
WebhookDispatcher.

Both carry event ids derived from the invoice id: re-publishing the same
invoice transition yields the same event id, which the idempotency ledger
collapses downstream.
"""

from datetime import date
from decimal import Decimal
from typing import ClassVar

from meterly.core.events.base import DomainEvent, EventPayload, derive_event_id
from meterly.core.events.enums import EventType


class InvoiceCreatedPayload(EventPayload):
    """Summary of a freshly created draft invoice."""

    invoice_id: str
    tenant_id: str
    period_start: date
    period_end: date
    total_requests: int
    amount: Decimal


class InvoiceReadyPayload(EventPayload):
    """A finalized invoice whose PDF is retrievable at ``pdf_url``."""

    invoice_id: str
    tenant_id: str
    pdf_url: str


class InvoiceCreatedEvent(DomainEvent):
    """Emitted after a draft invoice is persisted.

    Consumers:
    - InvoiceRenderer: renders the PDF and finalizes the invoice
    """

    EXPECTED_TYPE: ClassVar[EventType] = EventType.INVOICE_CREATED

    event_type: EventType = EventType.INVOICE_CREATED
    payload: InvoiceCreatedPayload

    @classmethod
    def for_invoice(
        cls,
        invoice_id: str,
        tenant_id: str,
        period_start: date,
        period_end: date,
        total_requests: int,
        amount: Decimal,
    ) -> "InvoiceCreatedEvent":
        """Create the event announcing a draft invoice."""
        return cls(
            event_id=derive_event_id(invoice_id, EventType.INVOICE_CREATED),
            payload=InvoiceCreatedPayload(
                invoice_id=invoice_id,
                tenant_id=tenant_id,
                period_start=period_start,
                period_end=period_end,
                total_requests=total_requests,
                amount=amount,
            ),
        )


class InvoiceReadyEvent(DomainEvent):
    """Emitted after an invoice is finalized with a stored PDF.

    Consumers:
    - WebhookDispatcher: notifies the tenant's webhook endpoint
    """

    EXPECTED_TYPE: ClassVar[EventType] = EventType.INVOICE_READY

    event_type: EventType = EventType.INVOICE_READY
    payload: InvoiceReadyPayload

    @classmethod
    def for_invoice(cls, invoice_id: str, tenant_id: str, pdf_url: str) -> "InvoiceReadyEvent":
        """Create the event announcing a finalized invoice."""
        return cls(
            event_id=derive_event_id(invoice_id, EventType.INVOICE_READY),
            payload=InvoiceReadyPayload(invoice_id=invoice_id, tenant_id=tenant_id, pdf_url=pdf_url),
        )
