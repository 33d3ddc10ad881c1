"""Usage aggregator: consumes ConsumptionRecorded, increments usage counters.

The counter increment and the processed-event record are written in one
store transaction (the ledger record rides along as the increment's
marker), so a crash can never count an event without recording it, or
record it without counting it.

Period assignment uses processing time by default: a request consumed at
23:59:59 on the last day of a month but processed after midnight counts
toward the next month. ``UsagePeriodSource.EVENT`` buckets by the event
timestamp instead.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

from meterly.core.config.enums import UsagePeriodSource
from meterly.core.events.enums import EventType
from meterly.core.events.usage import ConsumptionRecordedEvent
from meterly.core.logging import ContextualLogger
from meterly.core.periods import period_key
from meterly.core.protocols.event_bus import Delivery
from meterly.domains.idempotency.consumer import IdempotentConsumer
from meterly.domains.idempotency.protocols import IdempotencyLedgerProtocol
from meterly.domains.tenants.repository import TenantRepositoryProtocol
from meterly.domains.tenants.types import TenantNotFoundError
from meterly.domains.usage.repository import UsageRepositoryProtocol
from meterly.domains.usage.types import PLAN_REQUEST_LIMITS, exceeds_plan_limit


class UsageAggregator(IdempotentConsumer):
    """Counts one request per ConsumptionRecorded event."""

    EVENT_PATTERNS = [EventType.CONSUMPTION_RECORDED.value]

    def __init__(
        self,
        ledger: IdempotencyLedgerProtocol,
        tenant_repo: TenantRepositoryProtocol,
        usage_repo: UsageRepositoryProtocol,
        period_source: UsagePeriodSource = UsagePeriodSource.PROCESSING,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            ledger: This consumer's idempotency ledger.
            tenant_repo: Tenant lookup.
            usage_repo: Usage counters.
            period_source: Which clock picks the period.
            clock: Returns the current UTC time (injectable for tests).
        """
        super().__init__(ledger)
        self._tenants = tenant_repo
        self._usage = usage_repo
        self._period_source = period_source
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _period_for(self, event: ConsumptionRecordedEvent) -> str:
        if self._period_source == UsagePeriodSource.EVENT:
            return period_key(event.payload.timestamp)
        return period_key(self._clock())

    async def process(
        self,
        event: ConsumptionRecordedEvent,
        log: ContextualLogger,
        delivery: Optional[Delivery],
    ) -> None:
        """Increment the tenant's counter for the current period."""
        tenant_id = event.payload.tenant_id
        log = log.with_context(tenant_id=tenant_id)

        tenant = await self._tenants.get(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)

        period = self._period_for(event)
        count = await self._usage.increment(
            tenant_id, period, marker=self._ledger.marker_for(event.event_id)
        )
        if count is None:
            log.info(f"Consumption already counted for {period}, skipping")
            return

        log.debug(f"Usage for {period} is now {count}")
        if exceeds_plan_limit(tenant.plan, count):
            log.warning(
                f"Tenant exceeded {tenant.plan.value} plan limit for {period}: "
                f"{count} > {PLAN_REQUEST_LIMITS[tenant.plan]} requests"
            )
