"""Container factory.

Reads settings and decides which adapter implementation backs each
protocol, then wires every pipeline stage onto the event bus.
"""

from typing import Optional

import redis.asyncio as redis

from meterly.adapters.blob_store import FilesystemBlobStore, S3BlobStore
from meterly.adapters.documents import ReportLabInvoiceRenderer
from meterly.adapters.event_bus import InMemoryEventBus, RedisStreamEventBus
from meterly.adapters.kv_store import InMemoryKeyValueStore, RedisKeyValueStore
from meterly.adapters.webhooks import HttpWebhookSender
from meterly.core.config import (
    BlobBackendType,
    EventBusBackendType,
    KeyValueBackendType,
    Settings,
)
from meterly.core.container.container import Container
from meterly.core.logging import logger
from meterly.core.protocols import BlobStore, EventBus, EventSubscriber, KeyValueStore
from meterly.domains.billing.repository import BillingRunRepository
from meterly.domains.billing.scheduler import BillingScheduler
from meterly.domains.idempotency.ledger import KeyValueIdempotencyLedger
from meterly.domains.invoices.renderer import InvoiceRenderer
from meterly.domains.invoices.repository import InvoiceRepository
from meterly.domains.tenants.repository import TenantRepository
from meterly.domains.tenants.service import TenantService
from meterly.domains.usage.aggregator import UsageAggregator
from meterly.domains.usage.recorder import ConsumptionRecorder
from meterly.domains.usage.repository import UsageRepository
from meterly.domains.webhooks.dispatcher import WebhookDispatcher


def create_container(settings: Settings) -> Container:
    """Build container with environment-appropriate implementations.

    This is the single source of truth for dependency wiring. It reads
    the settings and decides which adapter implementation to use for
    each protocol.

    Args:
        settings: Application settings (from core/config)

    Returns:
        Fully constructed Container ready for use

    Example:
        # In main.py or worker.py
        from meterly.core.config import settings
        from meterly.core.container import create_container

        container = create_container(settings)
    """
    # -----------------------------------------------------------------
    # Redis (shared by the key-value store and the stream transport)
    # -----------------------------------------------------------------
    redis_client = _create_redis_client(settings)

    # -----------------------------------------------------------------
    # Infrastructure adapters
    # -----------------------------------------------------------------
    kv_store = _create_kv_store(settings, redis_client)
    event_bus = _create_event_bus(settings, redis_client)
    blob_store = _create_blob_store(settings)
    document_renderer = ReportLabInvoiceRenderer()
    webhook_sender = HttpWebhookSender(timeout=settings.WEBHOOK_TIMEOUT_SECONDS)

    # -----------------------------------------------------------------
    # Repositories
    # -----------------------------------------------------------------
    tenant_repo = TenantRepository(kv_store)
    usage_repo = UsageRepository(kv_store)
    invoice_repo = InvoiceRepository(kv_store)
    billing_run_repo = BillingRunRepository(kv_store)

    # -----------------------------------------------------------------
    # Pipeline stages
    # Each consumer gets its own idempotency ledger.
    # -----------------------------------------------------------------
    def ledger_for(consumer: str) -> KeyValueIdempotencyLedger:
        return KeyValueIdempotencyLedger(
            kv_store,
            consumer=consumer,
            claim_ttl_seconds=settings.IDEMPOTENCY_CLAIM_TTL_SECONDS,
        )

    usage_aggregator = UsageAggregator(
        ledger=ledger_for(UsageAggregator.__name__),
        tenant_repo=tenant_repo,
        usage_repo=usage_repo,
        period_source=settings.USAGE_PERIOD_SOURCE,
    )
    invoice_renderer = InvoiceRenderer(
        ledger=ledger_for(InvoiceRenderer.__name__),
        invoice_repo=invoice_repo,
        tenant_repo=tenant_repo,
        document_renderer=document_renderer,
        blob_store=blob_store,
        event_bus=event_bus,
        bucket=settings.INVOICE_BUCKET,
    )
    webhook_dispatcher = WebhookDispatcher(
        ledger=ledger_for(WebhookDispatcher.__name__),
        tenant_repo=tenant_repo,
        sender=webhook_sender,
    )
    billing_scheduler = BillingScheduler(
        tenant_repo=tenant_repo,
        usage_repo=usage_repo,
        invoice_repo=invoice_repo,
        run_repo=billing_run_repo,
        event_bus=event_bus,
        page_size=settings.BILLING_PAGE_SIZE,
    )

    subscribe_all(event_bus, usage_aggregator, invoice_renderer, webhook_dispatcher)

    logger.info(
        f"Container built (kv={settings.KV_BACKEND.value}, "
        f"bus={settings.EVENT_BUS_BACKEND.value}, blob={settings.BLOB_BACKEND.value})"
    )

    return Container(
        kv_store=kv_store,
        event_bus=event_bus,
        blob_store=blob_store,
        document_renderer=document_renderer,
        webhook_sender=webhook_sender,
        tenant_repo=tenant_repo,
        usage_repo=usage_repo,
        invoice_repo=invoice_repo,
        billing_run_repo=billing_run_repo,
        tenant_service=TenantService(tenant_repo),
        consumption_recorder=ConsumptionRecorder(tenant_repo, event_bus),
        billing_scheduler=billing_scheduler,
        usage_aggregator=usage_aggregator,
        invoice_renderer=invoice_renderer,
        webhook_dispatcher=webhook_dispatcher,
        redis=redis_client,
    )


def subscribe_all(bus: EventBus, *subscribers: EventSubscriber) -> None:
    """Register every subscriber's handler for each of its event patterns."""
    for subscriber in subscribers:
        for pattern in subscriber.EVENT_PATTERNS:
            bus.subscribe(pattern, subscriber.handle)


def _create_redis_client(settings: Settings) -> Optional[redis.Redis]:
    """Create the Redis client if any backend needs it."""
    if (
        settings.KV_BACKEND != KeyValueBackendType.REDIS
        and settings.EVENT_BUS_BACKEND != EventBusBackendType.REDIS
    ):
        return None
    return redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_keepalive=True,
    )


def _create_kv_store(settings: Settings, redis_client: Optional[redis.Redis]) -> KeyValueStore:
    """Create the key-value store.

    - memory: InMemoryKeyValueStore (single process, local dev)
    - redis: RedisKeyValueStore
    """
    if settings.KV_BACKEND == KeyValueBackendType.REDIS:
        return RedisKeyValueStore(redis_client, prefix=settings.REDIS_KEY_PREFIX)
    return InMemoryKeyValueStore()


def _create_event_bus(settings: Settings, redis_client: Optional[redis.Redis]) -> EventBus:
    """Create the event bus transport.

    - memory: InMemoryEventBus, delivers inline with tenacity redelivery
    - redis: RedisStreamEventBus, consumed by the worker process
    """
    if settings.EVENT_BUS_BACKEND == EventBusBackendType.REDIS:
        return RedisStreamEventBus(
            redis_client,
            prefix=settings.REDIS_KEY_PREFIX,
            consumer_name=settings.EVENT_CONSUMER_NAME,
            max_deliveries=settings.EVENT_MAX_DELIVERIES,
            visibility_timeout_seconds=settings.EVENT_VISIBILITY_TIMEOUT_SECONDS,
            stream_maxlen=settings.EVENT_STREAM_MAXLEN,
        )
    return InMemoryEventBus(
        max_deliveries=settings.EVENT_MAX_DELIVERIES,
        retry_min_wait=settings.EVENT_RETRY_MIN_WAIT_SECONDS,
        retry_max_wait=settings.EVENT_RETRY_MAX_WAIT_SECONDS,
    )


def _create_blob_store(settings: Settings) -> BlobStore:
    """Create the blob store for invoice PDFs.

    - filesystem: FilesystemBlobStore under LOCAL_BLOB_PATH
    - aws: S3BlobStore (optionally against an S3-compatible endpoint)
    """
    if settings.BLOB_BACKEND == BlobBackendType.AWS:
        return S3BlobStore(region=settings.AWS_REGION, endpoint_url=settings.S3_ENDPOINT_URL)
    return FilesystemBlobStore(settings.LOCAL_BLOB_PATH, settings.LOCAL_BLOB_BASE_URL)
