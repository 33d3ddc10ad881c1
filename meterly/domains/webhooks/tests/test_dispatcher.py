"""Unit tests for WebhookDispatcher: invoice.ready notifications."""

from datetime import datetime, timezone

import pytest

from meterly.core.events.invoice import InvoiceReadyEvent
from meterly.core.protocols.event_bus import Delivery
from meterly.domains.tenants.types import TenantNotFoundError
from meterly.domains.webhooks.dispatcher import WebhookDispatcher
from meterly.domains.webhooks.types import WebhookDeliveryError
from meterly.schemas.tenant import Tenant

NOW = datetime(2024, 3, 1, 0, 15, tzinfo=timezone.utc)
HOOK_URL = "https://acme.example.com/hooks/invoices"
PDF_URL = "https://blobs.test/test-invoices/invoices/inv-1.pdf"


@pytest.fixture
def dispatcher(make_ledger, tenant_repo, fake_webhook_sender):
    return WebhookDispatcher(
        ledger=make_ledger("WebhookDispatcher"),
        tenant_repo=tenant_repo,
        sender=fake_webhook_sender,
        clock=lambda: NOW,
    )


def _ready_event(tenant_id: str = "tenant-1") -> InvoiceReadyEvent:
    return InvoiceReadyEvent.for_invoice("inv-1", tenant_id, PDF_URL)


class TestDispatch:
    @pytest.mark.asyncio
    async def test_posts_notification(self, dispatcher, tenant_repo, fake_webhook_sender):
        await tenant_repo.put(Tenant(tenant_id="tenant-1", name="Acme", webhook_url=HOOK_URL))
        event = _ready_event()

        await dispatcher.handle(event)

        assert len(fake_webhook_sender.sent) == 1
        sent = fake_webhook_sender.sent[0]
        assert sent.url == HOOK_URL
        assert sent.payload == {
            "event": "invoice.ready",
            "invoiceId": "inv-1",
            "tenantId": "tenant-1",
            "pdfUrl": PDF_URL,
            "timestamp": "2024-03-01T00:15:00Z",
        }
        assert sent.idempotency_key == str(event.event_id)

    @pytest.mark.asyncio
    async def test_no_webhook_url_is_a_successful_no_op(
        self, dispatcher, tenant_repo, fake_webhook_sender, make_ledger
    ):
        await tenant_repo.put(Tenant(tenant_id="tenant-1", name="Quiet Co"))
        event = _ready_event()

        await dispatcher.handle(event)

        assert fake_webhook_sender.attempts == []
        assert await make_ledger("WebhookDispatcher").has_processed(event.event_id)

    @pytest.mark.asyncio
    async def test_duplicate_delivery_posts_once(
        self, dispatcher, tenant_repo, fake_webhook_sender
    ):
        await tenant_repo.put(Tenant(tenant_id="tenant-1", name="Acme", webhook_url=HOOK_URL))
        event = _ready_event()

        await dispatcher.handle(event)
        await dispatcher.handle(event)

        assert len(fake_webhook_sender.sent_to(HOOK_URL)) == 1

    @pytest.mark.asyncio
    async def test_unknown_tenant_raises(self, dispatcher):
        with pytest.raises(TenantNotFoundError):
            await dispatcher.handle(_ready_event("ghost"))


class TestFailures:
    @pytest.mark.asyncio
    async def test_failed_post_propagates_and_is_retried_on_redelivery(
        self, dispatcher, tenant_repo, fake_webhook_sender, make_ledger
    ):
        await tenant_repo.put(Tenant(tenant_id="tenant-1", name="Acme", webhook_url=HOOK_URL))
        fake_webhook_sender.fail_times = 1
        event = _ready_event()

        with pytest.raises(WebhookDeliveryError) as exc_info:
            await dispatcher.handle(event, Delivery(attempt=1, max_attempts=3))
        assert exc_info.value.status_code == 500
        assert not await make_ledger("WebhookDispatcher").has_processed(event.event_id)

        await dispatcher.handle(event, Delivery(attempt=2, max_attempts=3))

        assert len(fake_webhook_sender.attempts) == 2
        assert len(fake_webhook_sender.sent) == 1
        keys = {a.idempotency_key for a in fake_webhook_sender.attempts}
        assert keys == {str(event.event_id)}
