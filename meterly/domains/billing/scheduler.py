"""Billing scheduler: turns a month of usage into draft invoices.

Triggered by an external timer (the worker's periodic loop) or by an
operator through the HTTP boundary. A run bills one period for every tenant,
paging through tenants and checkpointing after each page.

Re-running is safe:
- invoice ids are derived from (tenant, period) and drafts are written with
  a conditional insert, so a tenant is invoiced at most once per period;
- an existing draft has its InvoiceCreated re-published with the same
  derived event id (the renderer dedups it), a finalized one is skipped;
- a completed checkpoint short-circuits the run, an incomplete one resumes
  from its cursor.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Callable, Optional

from meterly.core.events.invoice import InvoiceCreatedEvent
from meterly.core.logging import ContextualLogger, logger
from meterly.core.periods import period_bounds, period_key, previous_period
from meterly.core.protocols.event_bus import EventBus
from meterly.domains.billing.pricing import compute_amount
from meterly.domains.billing.repository import BillingRunRepositoryProtocol
from meterly.domains.billing.types import OpenPeriodError, invoice_id_for
from meterly.domains.invoices.repository import InvoiceRepositoryProtocol
from meterly.domains.invoices.types import InvoiceNotFoundError
from meterly.domains.tenants.repository import TenantRepositoryProtocol
from meterly.domains.usage.repository import UsageRepositoryProtocol
from meterly.schemas.billing import BillingRunCheckpoint, BillingRunResult, BillingRunStatus
from meterly.schemas.invoice import Invoice, InvoiceStatus
from meterly.schemas.tenant import Tenant


class _Outcome(str, Enum):
    CREATED = "created"
    REPUBLISHED = "republished"
    SKIPPED = "skipped"


class BillingScheduler:
    """Creates one draft invoice per tenant for a billing period."""

    def __init__(
        self,
        tenant_repo: TenantRepositoryProtocol,
        usage_repo: UsageRepositoryProtocol,
        invoice_repo: InvoiceRepositoryProtocol,
        run_repo: BillingRunRepositoryProtocol,
        event_bus: EventBus,
        page_size: int = 100,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            tenant_repo: Tenant paging.
            usage_repo: Usage counters.
            invoice_repo: Invoice persistence.
            run_repo: Billing run checkpoints.
            event_bus: Where InvoiceCreated is published.
            page_size: Tenants per page (and per checkpoint).
            clock: Returns the current UTC time (injectable for tests).
        """
        self._tenants = tenant_repo
        self._usage = usage_repo
        self._invoices = invoice_repo
        self._runs = run_repo
        self._bus = event_bus
        self._page_size = page_size
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def run(self, period: Optional[str] = None) -> BillingRunResult:
        """Bill ``period`` (default: the month before now).

        Only closed months can be billed: the invoice freezes the counter, and a
        completed run is never revisited.

        Raises:
            InvalidPeriodError: If ``period`` is not a valid YYYY-MM month.
            OpenPeriodError: If ``period`` is the current month or later.
        """
        now = self._clock()
        period = period or previous_period(now)
        period_start, period_end = period_bounds(period)
        current = period_key(now)
        if period >= current:
            raise OpenPeriodError(period, current)
        log = logger.with_context(period=period)

        checkpoint = await self._runs.get(period)
        if checkpoint is not None and checkpoint.status == BillingRunStatus.COMPLETED:
            log.info("Billing run already completed, nothing to do")
            return BillingRunResult(
                period=period,
                tenants_processed=checkpoint.tenants_processed,
                invoices_created=checkpoint.invoices_created,
                already_completed=True,
            )

        result = BillingRunResult(period=period, resumed=checkpoint is not None)
        if checkpoint is None:
            checkpoint = BillingRunCheckpoint(period=period, updated_at=self._clock())
        else:
            log.info(f"Resuming billing run from cursor {checkpoint.cursor!r}")
            result.tenants_processed = checkpoint.tenants_processed
            result.invoices_created = checkpoint.invoices_created

        cursor = checkpoint.cursor
        while True:
            tenants, next_cursor = await self._tenants.list_page(cursor, self._page_size)
            for tenant in tenants:
                outcome = await self._bill_tenant(tenant, period, period_start, period_end, log)
                result.tenants_processed += 1
                if outcome == _Outcome.CREATED:
                    result.invoices_created += 1
                elif outcome == _Outcome.REPUBLISHED:
                    result.invoices_republished += 1
                else:
                    result.invoices_skipped += 1

            cursor = next_cursor
            checkpoint = checkpoint.model_copy(
                update={
                    "cursor": cursor,
                    "tenants_processed": result.tenants_processed,
                    "invoices_created": result.invoices_created,
                    "status": (
                        BillingRunStatus.COMPLETED if cursor is None else BillingRunStatus.RUNNING
                    ),
                    "updated_at": self._clock(),
                }
            )
            await self._runs.save(checkpoint)
            if cursor is None:
                break

        log.info(
            f"Billing run finished: {result.tenants_processed} tenants, "
            f"{result.invoices_created} created, {result.invoices_republished} republished, "
            f"{result.invoices_skipped} skipped"
        )
        return result

    async def _bill_tenant(
        self,
        tenant: Tenant,
        period: str,
        period_start: date,
        period_end: date,
        log: ContextualLogger,
    ) -> _Outcome:
        invoice_id = invoice_id_for(tenant.tenant_id, period)
        log = log.with_context(tenant_id=tenant.tenant_id, invoice_id=invoice_id)

        usage = await self._usage.get(tenant.tenant_id, period)
        invoice = Invoice(
            invoice_id=invoice_id,
            tenant_id=tenant.tenant_id,
            period=period,
            period_start=period_start,
            period_end=period_end,
            total_requests=usage.request_count,
            amount=compute_amount(tenant.plan, usage.request_count),
            created_at=self._clock(),
        )

        if await self._invoices.create_draft(invoice):
            await self._publish_created(invoice)
            log.info(f"Created draft invoice for {usage.request_count} requests")
            return _Outcome.CREATED

        existing = await self._invoices.get(invoice_id)
        if existing is None:
            raise InvoiceNotFoundError(invoice_id)
        if existing.status == InvoiceStatus.FINALIZED:
            log.debug("Invoice already finalized, skipping")
            return _Outcome.SKIPPED

        await self._publish_created(existing)
        log.info("Draft invoice already exists, re-published InvoiceCreated")
        return _Outcome.REPUBLISHED

    async def _publish_created(self, invoice: Invoice) -> None:
        await self._bus.publish(
            InvoiceCreatedEvent.for_invoice(
                invoice_id=invoice.invoice_id,
                tenant_id=invoice.tenant_id,
                period_start=invoice.period_start,
                period_end=invoice.period_end,
                total_requests=invoice.total_requests,
                amount=invoice.amount,
            )
        )
