"""The dependency container.

A frozen dataclass with one field per collaborator, typed by protocol where
one exists. Construction lives in factory.py; the container only serves.
"""

from dataclasses import dataclass, replace
from typing import Any, Optional

from redis.asyncio import Redis

from meterly.core.protocols import (
    BlobStore,
    EventBus,
    InvoiceDocumentRenderer,
    KeyValueStore,
    WebhookSender,
)
from meterly.domains.billing.repository import BillingRunRepositoryProtocol
from meterly.domains.billing.scheduler import BillingScheduler
from meterly.domains.invoices.renderer import InvoiceRenderer
from meterly.domains.invoices.repository import InvoiceRepositoryProtocol
from meterly.domains.tenants.repository import TenantRepositoryProtocol
from meterly.domains.tenants.service import TenantService
from meterly.domains.usage.aggregator import UsageAggregator
from meterly.domains.usage.recorder import ConsumptionRecorder
from meterly.domains.usage.repository import UsageRepositoryProtocol
from meterly.domains.webhooks.dispatcher import WebhookDispatcher


@dataclass(frozen=True)
class Container:
    """Immutable container holding all protocol implementations.

    Usage:
        # Production: use the global container built by factory
        from meterly.core.container import container
        await container.billing_scheduler.run()

        # Testing: construct directly with fakes (see conftest.py for the
        # full test_container fixture)
        test_container = Container(kv_store=InMemoryKeyValueStore(), ...)

        # FastAPI endpoints: use Inject() to pull individual protocols
        from meterly.api.deps import Inject
        async def my_endpoint(tenants: TenantService = Inject(TenantService)):
            ...
    """

    # Infrastructure
    kv_store: KeyValueStore
    event_bus: EventBus
    blob_store: BlobStore
    document_renderer: InvoiceDocumentRenderer
    webhook_sender: WebhookSender

    # Repositories (thin wrappers around the key-value store)
    tenant_repo: TenantRepositoryProtocol
    usage_repo: UsageRepositoryProtocol
    invoice_repo: InvoiceRepositoryProtocol
    billing_run_repo: BillingRunRepositoryProtocol

    # Boundary services
    tenant_service: TenantService
    consumption_recorder: ConsumptionRecorder

    # Pipeline stages
    billing_scheduler: BillingScheduler
    usage_aggregator: UsageAggregator
    invoice_renderer: InvoiceRenderer
    webhook_dispatcher: WebhookDispatcher

    # Shared Redis connection, when any backend uses Redis
    redis: Optional[Redis] = None

    # -----------------------------------------------------------------
    # Convenience methods
    # -----------------------------------------------------------------

    def replace(self, **changes: Any) -> "Container":
        """Create a new container with some dependencies replaced.

        Useful for partial overrides in tests:

            modified = container.replace(webhook_sender=FakeWebhookSender())

        Args:
            **changes: Dependency name -> new implementation

        Returns:
            New Container with specified dependencies replaced
        """
        return replace(self, **changes)

    async def close(self) -> None:
        """Release network clients held by adapters."""
        close_blob_store = getattr(self.blob_store, "close", None)
        if close_blob_store is not None:
            await close_blob_store()
        if self.redis is not None:
            await self.redis.aclose()
