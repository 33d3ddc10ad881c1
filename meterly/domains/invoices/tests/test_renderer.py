"""Unit tests for InvoiceRenderer: render, store, finalize, announce."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from meterly.core.events.enums import EventType
from meterly.core.events.invoice import InvoiceCreatedEvent
from meterly.core.exceptions import StorageError
from meterly.core.logging import logger
from meterly.domains.invoices.renderer import InvoiceRenderer
from meterly.domains.invoices.types import InvoiceNotFoundError
from meterly.domains.tenants.types import TenantNotFoundError
from meterly.schemas.invoice import Invoice, InvoiceStatus
from meterly.schemas.tenant import Tenant

NOW = datetime(2024, 3, 1, 0, 10, tzinfo=timezone.utc)
BUCKET = "test-invoices"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _draft(invoice_id: str = "inv-1", tenant_id: str = "tenant-1") -> Invoice:
    return Invoice(
        invoice_id=invoice_id,
        tenant_id=tenant_id,
        period="2024-02",
        period_start=date(2024, 2, 1),
        period_end=date(2024, 2, 29),
        total_requests=5,
        amount=Decimal("0.00"),
        created_at=NOW,
    )


def _created_event(invoice: Invoice) -> InvoiceCreatedEvent:
    return InvoiceCreatedEvent.for_invoice(
        invoice_id=invoice.invoice_id,
        tenant_id=invoice.tenant_id,
        period_start=invoice.period_start,
        period_end=invoice.period_end,
        total_requests=invoice.total_requests,
        amount=invoice.amount,
    )


@pytest.fixture
def renderer(
    make_ledger,
    invoice_repo,
    tenant_repo,
    fake_document_renderer,
    fake_blob_store,
    fake_event_bus,
):
    return InvoiceRenderer(
        ledger=make_ledger("InvoiceRenderer"),
        invoice_repo=invoice_repo,
        tenant_repo=tenant_repo,
        document_renderer=fake_document_renderer,
        blob_store=fake_blob_store,
        event_bus=fake_event_bus,
        bucket=BUCKET,
        clock=lambda: NOW,
    )


async def _seed(tenant_repo, invoice_repo) -> Invoice:
    await tenant_repo.put(Tenant(tenant_id="tenant-1", name="Acme Corp"))
    invoice = _draft()
    await invoice_repo.create_draft(invoice)
    return invoice


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


class TestRender:
    @pytest.mark.asyncio
    async def test_finalizes_and_publishes_ready(
        self, renderer, tenant_repo, invoice_repo, fake_blob_store, fake_event_bus
    ):
        invoice = await _seed(tenant_repo, invoice_repo)

        await renderer.handle(_created_event(invoice))

        stored = fake_blob_store.get(BUCKET, "invoices/inv-1.pdf")
        assert stored is not None
        assert stored.content_type == "application/pdf"

        finalized = await invoice_repo.get("inv-1")
        assert finalized.status == InvoiceStatus.FINALIZED
        assert finalized.pdf_url == f"https://blobs.test/{BUCKET}/invoices/inv-1.pdf"
        assert finalized.finalized_at == NOW

        ready = fake_event_bus.assert_published(EventType.INVOICE_READY)
        assert ready.payload.invoice_id == "inv-1"
        assert ready.payload.pdf_url == finalized.pdf_url

    @pytest.mark.asyncio
    async def test_document_content(
        self, renderer, tenant_repo, invoice_repo, fake_document_renderer
    ):
        invoice = await _seed(tenant_repo, invoice_repo)

        await renderer.handle(_created_event(invoice))

        document = fake_document_renderer.rendered[0]
        assert document.title == "INVOICE"
        assert document.lines() == [
            "Invoice ID: inv-1",
            "Tenant: Acme Corp",
            "Period: 2024-02-01 to 2024-02-29",
            "Total API Requests: 5",
            "Amount: $0.00",
            f"Generated on: {NOW.isoformat()}",
        ]

    @pytest.mark.asyncio
    async def test_duplicate_delivery_renders_once(
        self, renderer, tenant_repo, invoice_repo, fake_blob_store, fake_event_bus
    ):
        invoice = await _seed(tenant_repo, invoice_repo)
        event = _created_event(invoice)

        await renderer.handle(event)
        await renderer.handle(event)

        assert fake_blob_store.upload_calls == 1
        assert len(fake_event_bus.get_events(EventType.INVOICE_READY)) == 1


# ---------------------------------------------------------------------------
# Failures and replays
# ---------------------------------------------------------------------------


class TestFailures:
    @pytest.mark.asyncio
    async def test_storage_failure_leaves_draft_and_publishes_nothing(
        self, renderer, tenant_repo, invoice_repo, fake_blob_store, fake_event_bus
    ):
        invoice = await _seed(tenant_repo, invoice_repo)
        fake_blob_store.fail_uploads()

        with pytest.raises(StorageError):
            await renderer.handle(_created_event(invoice))

        assert (await invoice_repo.get("inv-1")).status == InvoiceStatus.DRAFT
        fake_event_bus.assert_not_published(EventType.INVOICE_READY)

    @pytest.mark.asyncio
    async def test_redelivery_after_storage_recovers(
        self, renderer, tenant_repo, invoice_repo, fake_blob_store, fake_event_bus
    ):
        invoice = await _seed(tenant_repo, invoice_repo)
        event = _created_event(invoice)
        fake_blob_store.fail_uploads()
        with pytest.raises(StorageError):
            await renderer.handle(event)

        fake_blob_store.recover()
        await renderer.handle(event)

        assert (await invoice_repo.get("inv-1")).status == InvoiceStatus.FINALIZED
        fake_event_bus.assert_published(EventType.INVOICE_READY)

    @pytest.mark.asyncio
    async def test_already_finalized_republishes_without_rendering(
        self, renderer, tenant_repo, invoice_repo, fake_blob_store, fake_event_bus
    ):
        """Crash after finalizing, before InvoiceReady was published."""
        invoice = await _seed(tenant_repo, invoice_repo)
        await invoice_repo.finalize("inv-1", "https://blobs.test/earlier.pdf", NOW)

        await renderer.handle(_created_event(invoice))

        assert fake_blob_store.upload_calls == 0
        ready = fake_event_bus.assert_published(EventType.INVOICE_READY)
        assert ready.payload.pdf_url == "https://blobs.test/earlier.pdf"

    @pytest.mark.asyncio
    async def test_ready_event_id_is_stable_across_replays(
        self, renderer, tenant_repo, invoice_repo, fake_event_bus
    ):
        invoice = await _seed(tenant_repo, invoice_repo)
        event = _created_event(invoice)
        await renderer.handle(event)

        # Bypass the ledger to force a replay
        await renderer.process(event, logger, None)

        ready_events = fake_event_bus.get_events(EventType.INVOICE_READY)
        assert len(ready_events) == 2
        assert ready_events[0].event_id == ready_events[1].event_id

    @pytest.mark.asyncio
    async def test_missing_invoice_raises(self, renderer, tenant_repo):
        await tenant_repo.put(Tenant(tenant_id="tenant-1", name="Acme Corp"))

        with pytest.raises(InvoiceNotFoundError):
            await renderer.handle(_created_event(_draft("inv-missing")))

    @pytest.mark.asyncio
    async def test_missing_tenant_raises(self, renderer, invoice_repo, fake_blob_store):
        invoice = _draft(tenant_id="ghost")
        await invoice_repo.create_draft(invoice)

        with pytest.raises(TenantNotFoundError):
            await renderer.handle(_created_event(invoice))

        assert fake_blob_store.upload_calls == 0


class TestConcurrentFinalize:
    @pytest.mark.asyncio
    async def test_losing_delivery_announces_stored_url(
        self, make_ledger, tenant_repo, invoice_repo, fake_document_renderer, fake_event_bus
    ):
        """Another delivery finalizes between our upload and our finalize."""
        from meterly.adapters.blob_store.fake import FakeBlobStore

        class _RacingBlobStore(FakeBlobStore):
            async def upload(self, bucket, key, data, content_type):
                url = await super().upload(bucket, key, data, content_type)
                await invoice_repo.finalize("inv-1", "https://blobs.test/winner.pdf", NOW)
                return url

        invoice = await _seed(tenant_repo, invoice_repo)
        renderer = InvoiceRenderer(
            ledger=make_ledger("InvoiceRenderer"),
            invoice_repo=invoice_repo,
            tenant_repo=tenant_repo,
            document_renderer=fake_document_renderer,
            blob_store=_RacingBlobStore(),
            event_bus=fake_event_bus,
            bucket=BUCKET,
            clock=lambda: NOW,
        )

        await renderer.handle(_created_event(invoice))

        ready = fake_event_bus.assert_published(EventType.INVOICE_READY)
        assert ready.payload.pdf_url == "https://blobs.test/winner.pdf"
        assert (await invoice_repo.get("inv-1")).pdf_url == "https://blobs.test/winner.pdf"
