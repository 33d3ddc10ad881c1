"""Unit tests for the container factory wiring.

These tests verify that ``create_container`` picks the adapter for each
backend setting and subscribes every pipeline stage to its event types.
"""

import pytest

from meterly.adapters.blob_store.filesystem import FilesystemBlobStore
from meterly.adapters.event_bus.in_memory import InMemoryEventBus
from meterly.adapters.event_bus.redis_streams import RedisStreamEventBus
from meterly.adapters.kv_store.in_memory import InMemoryKeyValueStore
from meterly.adapters.kv_store.redis import RedisKeyValueStore
from meterly.api.deps import _resolve_field_name
from meterly.core.config import Settings
from meterly.core.container import create_container
from meterly.domains.billing.scheduler import BillingScheduler
from meterly.domains.tenants.service import TenantService


def _settings(tmp_path, **overrides) -> Settings:
    values = {
        "KV_BACKEND": "memory",
        "EVENT_BUS_BACKEND": "memory",
        "BLOB_BACKEND": "filesystem",
        "LOCAL_BLOB_PATH": str(tmp_path / "blobs"),
    }
    values.update(overrides)
    return Settings(**values)


class TestLocalBackends:
    """Default settings: everything in memory, PDFs on the filesystem."""

    def test_adapters(self, tmp_path):
        container = create_container(_settings(tmp_path))

        assert isinstance(container.kv_store, InMemoryKeyValueStore)
        assert isinstance(container.event_bus, InMemoryEventBus)
        assert isinstance(container.blob_store, FilesystemBlobStore)
        assert container.redis is None

    def test_stages_share_the_store(self, tmp_path):
        container = create_container(_settings(tmp_path))

        assert container.tenant_repo._store is container.kv_store
        assert container.usage_repo._store is container.kv_store

    def test_every_stage_is_subscribed(self, tmp_path):
        container = create_container(_settings(tmp_path))

        subscribed = {
            (pattern, handler.__self__.name)
            for pattern, handler in container.event_bus._subscribers
        }
        assert subscribed == {
            ("ConsumptionRecorded", "UsageAggregator"),
            ("InvoiceCreated", "InvoiceRenderer"),
            ("InvoiceReady", "WebhookDispatcher"),
        }

    def test_consumers_have_separate_ledgers(self, tmp_path):
        container = create_container(_settings(tmp_path))

        consumers = {
            container.usage_aggregator._ledger.consumer,
            container.invoice_renderer._ledger.consumer,
            container.webhook_dispatcher._ledger.consumer,
        }
        assert consumers == {"UsageAggregator", "InvoiceRenderer", "WebhookDispatcher"}

    @pytest.mark.asyncio
    async def test_close_without_redis(self, tmp_path):
        container = create_container(_settings(tmp_path))

        await container.close()


class TestRedisBackends:
    def test_redis_adapters_share_one_client(self, tmp_path):
        container = create_container(
            _settings(tmp_path, KV_BACKEND="redis", EVENT_BUS_BACKEND="redis")
        )

        assert isinstance(container.kv_store, RedisKeyValueStore)
        assert isinstance(container.event_bus, RedisStreamEventBus)
        assert container.redis is not None
        assert container.kv_store._client is container.redis
        assert container.event_bus._client is container.redis


class TestSettings:
    def test_retry_window_must_be_ordered(self, tmp_path):
        with pytest.raises(ValueError, match="must not exceed"):
            _settings(tmp_path, EVENT_RETRY_MIN_WAIT_SECONDS=5, EVENT_RETRY_MAX_WAIT_SECONDS=1)

    def test_redis_url_encodes_password(self, tmp_path):
        settings = _settings(tmp_path, REDIS_PASSWORD="p@ss/word")

        assert settings.redis_url == "redis://:p%40ss%2Fword@localhost:6379/0"


class TestInject:
    def test_resolves_container_fields_by_type(self):
        assert _resolve_field_name(TenantService) == "tenant_service"
        assert _resolve_field_name(BillingScheduler) == "billing_scheduler"

    def test_unknown_type_raises(self):
        with pytest.raises(TypeError, match="No binding for dict"):
            _resolve_field_name(dict)
