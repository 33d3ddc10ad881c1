"""Billing run checkpoint repository."""

from typing import Optional, Protocol

from meterly.core.constants.tables import BILLING_RUNS
from meterly.core.protocols.kv_store import KeyValueStore
from meterly.schemas.billing import BillingRunCheckpoint


class BillingRunRepositoryProtocol(Protocol):
    """Data access for billing run checkpoints (one per period)."""

    async def get(self, period: str) -> Optional[BillingRunCheckpoint]:
        """Fetch the checkpoint for a period, or None."""
        ...

    async def save(self, checkpoint: BillingRunCheckpoint) -> None:
        """Insert or replace the checkpoint for its period."""
        ...


class BillingRunRepository(BillingRunRepositoryProtocol):
    """Checkpoints live in the ``billing_runs`` table keyed by period."""

    def __init__(self, store: KeyValueStore) -> None:
        """Initialize with the backing store."""
        self._store = store

    async def get(self, period: str) -> Optional[BillingRunCheckpoint]:
        """Fetch the checkpoint for a period, or None."""
        item = await self._store.get(BILLING_RUNS, period)
        return BillingRunCheckpoint.model_validate(item) if item else None

    async def save(self, checkpoint: BillingRunCheckpoint) -> None:
        """Insert or replace the checkpoint for its period."""
        await self._store.put(BILLING_RUNS, checkpoint.period, checkpoint.to_item())
