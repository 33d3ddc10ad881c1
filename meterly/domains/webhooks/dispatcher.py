"""Webhook dispatcher: consumes InvoiceReady, notifies the tenant endpoint.

The POST is an external side effect, so a crash after a successful POST and
before the ledger write leads to a second POST on redelivery. The
``Idempotency-Key`` header (the InvoiceReady event id, stable across
redeliveries) lets the receiver drop the duplicate.

The dispatcher never retries on its own; a failed POST raises
WebhookDeliveryError and the bus redelivers up to its ceiling.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

from meterly.core.events.enums import EventType
from meterly.core.events.invoice import InvoiceReadyEvent
from meterly.core.logging import ContextualLogger
from meterly.core.protocols.event_bus import Delivery
from meterly.core.protocols.webhooks import WebhookSender
from meterly.domains.idempotency.consumer import IdempotentConsumer
from meterly.domains.idempotency.protocols import IdempotencyLedgerProtocol
from meterly.domains.tenants.repository import TenantRepositoryProtocol
from meterly.domains.tenants.types import TenantNotFoundError
from meterly.domains.webhooks.types import InvoiceReadyNotification


class WebhookDispatcher(IdempotentConsumer):
    """Delivers invoice.ready notifications."""

    EVENT_PATTERNS = [EventType.INVOICE_READY.value]

    def __init__(
        self,
        ledger: IdempotencyLedgerProtocol,
        tenant_repo: TenantRepositoryProtocol,
        sender: WebhookSender,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Initialize with the ledger, tenant lookup and the HTTP sender."""
        super().__init__(ledger)
        self._tenants = tenant_repo
        self._sender = sender
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def process(
        self,
        event: InvoiceReadyEvent,
        log: ContextualLogger,
        delivery: Optional[Delivery],
    ) -> None:
        """POST the notification, or do nothing if the tenant has no webhook."""
        payload = event.payload
        log = log.with_context(tenant_id=payload.tenant_id, invoice_id=payload.invoice_id)

        tenant = await self._tenants.get(payload.tenant_id)
        if tenant is None:
            raise TenantNotFoundError(payload.tenant_id)

        if not tenant.webhook_url:
            log.info("Tenant has no webhook URL, nothing to notify")
            return

        notification = InvoiceReadyNotification(
            invoice_id=payload.invoice_id,
            tenant_id=payload.tenant_id,
            pdf_url=payload.pdf_url,
            timestamp=self._clock(),
        )
        attempt = f"{delivery.attempt}/{delivery.max_attempts}" if delivery else "1/1"
        log.info(f"Sending invoice.ready webhook (attempt {attempt})")

        await self._sender.send(
            tenant.webhook_url,
            notification.to_payload(),
            idempotency_key=str(event.event_id),
        )
        log.info("Webhook delivered")
