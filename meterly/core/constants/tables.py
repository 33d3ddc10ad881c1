"""Key-value store table names.

Each table has a single writer stage (see the ownership notes per table).
"""

# Tenant records. Written by the tenant boundary, read-only to the pipeline.
TENANTS = "tenants"

# Usage counters keyed "<tenant_id>#<YYYY-MM>". Written only by the UsageAggregator.
USAGE = "usage"

# Invoices keyed by invoice id. Created by the BillingScheduler,
# finalized by the InvoiceRenderer.
INVOICES = "invoices"

# Billing run checkpoints keyed by period. Written only by the BillingScheduler.
BILLING_RUNS = "billing_runs"

# Idempotency ledger keyed "<consumer>#<event_id>". Append-only.
PROCESSED_EVENTS = "processed_events"

# Short-lived claims held while a consumer processes an event, same keys.
EVENT_CLAIMS = "event_claims"
