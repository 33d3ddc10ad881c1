"""Fake implementations for idempotency domain testing."""

from meterly.domains.idempotency.fakes.ledger import FakeIdempotencyLedger

__all__ = ["FakeIdempotencyLedger"]
