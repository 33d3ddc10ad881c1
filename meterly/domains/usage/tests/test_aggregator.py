"""Unit tests for UsageAggregator: counting, dedup and period assignment."""

import asyncio
import logging
from datetime import datetime, timezone

import pytest
import pytest_asyncio

from meterly.core.config.enums import UsagePeriodSource
from meterly.core.events.usage import ConsumptionRecordedEvent
from meterly.core.logging import logger
from meterly.domains.tenants.types import TenantNotFoundError
from meterly.domains.usage.aggregator import UsageAggregator
from meterly.schemas.tenant import Tenant

NOW = datetime(2024, 2, 10, 9, 30, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def tenant(tenant_repo):
    tenant = Tenant(tenant_id="tenant-1", name="Acme Corp")
    await tenant_repo.put(tenant)
    return tenant


@pytest.fixture
def aggregator(make_ledger, tenant_repo, usage_repo):
    return UsageAggregator(
        ledger=make_ledger("UsageAggregator"),
        tenant_repo=tenant_repo,
        usage_repo=usage_repo,
        clock=lambda: NOW,
    )


class TestCounting:
    @pytest.mark.asyncio
    async def test_counts_one_request(self, aggregator, usage_repo, tenant):
        await aggregator.handle(ConsumptionRecordedEvent.record("tenant-1", NOW))

        usage = await usage_repo.get("tenant-1", "2024-02")
        assert usage.request_count == 1

    @pytest.mark.asyncio
    async def test_redelivery_counts_once(self, aggregator, usage_repo, tenant):
        event = ConsumptionRecordedEvent.record("tenant-1", NOW)

        for _ in range(3):
            await aggregator.handle(event)

        usage = await usage_repo.get("tenant-1", "2024-02")
        assert usage.request_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_distinct_events_are_all_counted(
        self, aggregator, usage_repo, tenant
    ):
        events = [ConsumptionRecordedEvent.record("tenant-1", NOW) for _ in range(50)]

        await asyncio.gather(*[aggregator.handle(e) for e in events])

        usage = await usage_repo.get("tenant-1", "2024-02")
        assert usage.request_count == 50

    @pytest.mark.asyncio
    async def test_counter_and_ledger_are_written_together(
        self, aggregator, usage_repo, make_ledger, tenant
    ):
        event = ConsumptionRecordedEvent.record("tenant-1", NOW)

        await aggregator.handle(event)

        assert await make_ledger("UsageAggregator").has_processed(event.event_id)

    @pytest.mark.asyncio
    async def test_marker_already_present_skips_increment(
        self, aggregator, usage_repo, make_ledger, tenant
    ):
        """A crash after the fused write but before the claim release."""
        event = ConsumptionRecordedEvent.record("tenant-1", NOW)
        ledger = make_ledger("UsageAggregator")
        await usage_repo.increment("tenant-1", "2024-02", marker=ledger.marker_for(event.event_id))

        await aggregator.process(event, logger, None)

        usage = await usage_repo.get("tenant-1", "2024-02")
        assert usage.request_count == 1

    @pytest.mark.asyncio
    async def test_unknown_tenant_raises(self, aggregator, usage_repo):
        event = ConsumptionRecordedEvent.record("ghost", NOW)

        with pytest.raises(TenantNotFoundError):
            await aggregator.handle(event)

        assert (await usage_repo.get("ghost", "2024-02")).request_count == 0


class TestPeriodAssignment:
    @pytest.mark.asyncio
    async def test_processing_time_by_default(self, make_ledger, tenant_repo, usage_repo, tenant):
        """Consumed just before midnight, processed just after: counts toward March."""
        aggregator = UsageAggregator(
            ledger=make_ledger("UsageAggregator"),
            tenant_repo=tenant_repo,
            usage_repo=usage_repo,
            clock=lambda: datetime(2024, 3, 1, 0, 0, 1, tzinfo=timezone.utc),
        )
        consumed = datetime(2024, 2, 29, 23, 59, 59, tzinfo=timezone.utc)

        await aggregator.handle(ConsumptionRecordedEvent.record("tenant-1", consumed))

        assert (await usage_repo.get("tenant-1", "2024-03")).request_count == 1
        assert (await usage_repo.get("tenant-1", "2024-02")).request_count == 0

    @pytest.mark.asyncio
    async def test_event_time_when_configured(self, make_ledger, tenant_repo, usage_repo, tenant):
        aggregator = UsageAggregator(
            ledger=make_ledger("UsageAggregator"),
            tenant_repo=tenant_repo,
            usage_repo=usage_repo,
            period_source=UsagePeriodSource.EVENT,
            clock=lambda: datetime(2024, 3, 1, 0, 0, 1, tzinfo=timezone.utc),
        )
        consumed = datetime(2024, 2, 29, 23, 59, 59, tzinfo=timezone.utc)

        await aggregator.handle(ConsumptionRecordedEvent.record("tenant-1", consumed))

        assert (await usage_repo.get("tenant-1", "2024-02")).request_count == 1


class TestPlanLimit:
    @pytest.mark.asyncio
    async def test_warns_when_free_limit_exceeded(self, aggregator, usage_repo, tenant, caplog):
        await usage_repo.increment("tenant-1", "2024-02", amount=1000)

        with caplog.at_level(logging.WARNING):
            await aggregator.handle(ConsumptionRecordedEvent.record("tenant-1", NOW))

        assert (await usage_repo.get("tenant-1", "2024-02")).request_count == 1001
        assert any("exceeded FREE plan limit" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_no_warning_at_the_limit(self, aggregator, usage_repo, tenant, caplog):
        await usage_repo.increment("tenant-1", "2024-02", amount=999)

        with caplog.at_level(logging.WARNING):
            await aggregator.handle(ConsumptionRecordedEvent.record("tenant-1", NOW))

        assert not any("plan limit" in r.getMessage() for r in caplog.records)
