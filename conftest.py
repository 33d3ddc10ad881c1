"""Root conftest for pytest configuration and shared fixtures.

This conftest is loaded before both testpaths (tests/ and meterly/), making
its fixtures available to centralized tests AND colocated domain/adapter tests.
"""

import os

import pytest

# Register pytest-asyncio plugin at the root level
pytest_plugins = ("pytest_asyncio",)

# ---------------------------------------------------------------------------
# Environment variables, set before any meterly module import
# Uses setdefault so real env vars (CI) are never overridden.
# ---------------------------------------------------------------------------
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("KV_BACKEND", "memory")
os.environ.setdefault("EVENT_BUS_BACKEND", "memory")
os.environ.setdefault("EVENT_RETRY_MIN_WAIT_SECONDS", "0")
os.environ.setdefault("EVENT_RETRY_MAX_WAIT_SECONDS", "0")


# ---------------------------------------------------------------------------
# Shared fake fixtures (one per protocol)
# ---------------------------------------------------------------------------


@pytest.fixture
def kv_store():
    """In-memory KeyValueStore (real semantics, no network)."""
    from meterly.adapters.kv_store.in_memory import InMemoryKeyValueStore

    return InMemoryKeyValueStore()


@pytest.fixture
def fake_event_bus():
    """Fake EventBus that records published events."""
    from meterly.adapters.event_bus.fake import FakeEventBus

    return FakeEventBus()


@pytest.fixture
def fake_blob_store():
    """Fake BlobStore that keeps uploads in memory."""
    from meterly.adapters.blob_store.fake import FakeBlobStore

    return FakeBlobStore()


@pytest.fixture
def fake_document_renderer():
    """Fake InvoiceDocumentRenderer that returns the document text."""
    from meterly.adapters.documents.fake import FakeInvoiceRenderer

    return FakeInvoiceRenderer()


@pytest.fixture
def fake_webhook_sender():
    """Fake WebhookSender that records deliveries."""
    from meterly.adapters.webhooks.fake import FakeWebhookSender

    return FakeWebhookSender()


# ---------------------------------------------------------------------------
# Repositories over the in-memory store
# ---------------------------------------------------------------------------


@pytest.fixture
def tenant_repo(kv_store):
    """TenantRepository over the in-memory store."""
    from meterly.domains.tenants.repository import TenantRepository

    return TenantRepository(kv_store)


@pytest.fixture
def usage_repo(kv_store):
    """UsageRepository over the in-memory store."""
    from meterly.domains.usage.repository import UsageRepository

    return UsageRepository(kv_store)


@pytest.fixture
def invoice_repo(kv_store):
    """InvoiceRepository over the in-memory store."""
    from meterly.domains.invoices.repository import InvoiceRepository

    return InvoiceRepository(kv_store)


@pytest.fixture
def billing_run_repo(kv_store):
    """BillingRunRepository over the in-memory store."""
    from meterly.domains.billing.repository import BillingRunRepository

    return BillingRunRepository(kv_store)


@pytest.fixture
def make_ledger(kv_store):
    """Factory for per-consumer idempotency ledgers over the in-memory store."""
    from meterly.domains.idempotency.ledger import KeyValueIdempotencyLedger

    def _make(consumer: str, **kwargs) -> KeyValueIdempotencyLedger:
        return KeyValueIdempotencyLedger(kv_store, consumer=consumer, **kwargs)

    return _make


# ---------------------------------------------------------------------------
# Test container: Container wired to fakes and the in-memory store
# ---------------------------------------------------------------------------


@pytest.fixture
def test_container(
    kv_store,
    fake_event_bus,
    fake_blob_store,
    fake_document_renderer,
    fake_webhook_sender,
    tenant_repo,
    usage_repo,
    invoice_repo,
    billing_run_repo,
    make_ledger,
):
    """A Container with all external adapters faked.

    The event bus is a FakeEventBus, so stages do not trigger each other;
    tests call stages directly and assert on published events.
    """
    from meterly.core.container import Container
    from meterly.domains.billing.scheduler import BillingScheduler
    from meterly.domains.invoices.renderer import InvoiceRenderer
    from meterly.domains.tenants.service import TenantService
    from meterly.domains.usage.aggregator import UsageAggregator
    from meterly.domains.usage.recorder import ConsumptionRecorder
    from meterly.domains.webhooks.dispatcher import WebhookDispatcher

    return Container(
        kv_store=kv_store,
        event_bus=fake_event_bus,
        blob_store=fake_blob_store,
        document_renderer=fake_document_renderer,
        webhook_sender=fake_webhook_sender,
        tenant_repo=tenant_repo,
        usage_repo=usage_repo,
        invoice_repo=invoice_repo,
        billing_run_repo=billing_run_repo,
        tenant_service=TenantService(tenant_repo),
        consumption_recorder=ConsumptionRecorder(tenant_repo, fake_event_bus),
        billing_scheduler=BillingScheduler(
            tenant_repo=tenant_repo,
            usage_repo=usage_repo,
            invoice_repo=invoice_repo,
            run_repo=billing_run_repo,
            event_bus=fake_event_bus,
        ),
        usage_aggregator=UsageAggregator(
            ledger=make_ledger("UsageAggregator"),
            tenant_repo=tenant_repo,
            usage_repo=usage_repo,
        ),
        invoice_renderer=InvoiceRenderer(
            ledger=make_ledger("InvoiceRenderer"),
            invoice_repo=invoice_repo,
            tenant_repo=tenant_repo,
            document_renderer=fake_document_renderer,
            blob_store=fake_blob_store,
            event_bus=fake_event_bus,
            bucket="test-invoices",
        ),
        webhook_dispatcher=WebhookDispatcher(
            ledger=make_ledger("WebhookDispatcher"),
            tenant_repo=tenant_repo,
            sender=fake_webhook_sender,
        ),
    )
