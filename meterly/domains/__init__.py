"""Domain packages: one per pipeline stage plus the shared idempotency ledger."""
