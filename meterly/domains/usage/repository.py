"""Usage counter repository over the key-value store."""

from typing import Optional, Protocol

from meterly.core.constants.tables import USAGE
from meterly.core.protocols.kv_store import ConditionalPut, KeyValueStore
from meterly.domains.usage.types import REQUEST_COUNT_FIELD, usage_key
from meterly.schemas.usage import UsageCounter


class UsageRepositoryProtocol(Protocol):
    """Data access for per-tenant, per-period usage counters."""

    async def get(self, tenant_id: str, period: str) -> UsageCounter:
        """Return the counter (zero when absent)."""
        ...

    async def increment(
        self,
        tenant_id: str,
        period: str,
        amount: int = 1,
        marker: Optional[ConditionalPut] = None,
    ) -> Optional[int]:
        """Atomically add ``amount``; None if ``marker`` already existed."""
        ...


class UsageRepository(UsageRepositoryProtocol):
    """Counters live in the ``usage`` table keyed ``<tenantId>#<period>``."""

    def __init__(self, store: KeyValueStore) -> None:
        """Initialize with the backing store."""
        self._store = store

    async def get(self, tenant_id: str, period: str) -> UsageCounter:
        """Return the counter (zero when absent)."""
        item = await self._store.get(USAGE, usage_key(tenant_id, period)) or {}
        return UsageCounter(
            tenant_id=tenant_id,
            period=period,
            request_count=int(item.get(REQUEST_COUNT_FIELD) or 0),
        )

    async def increment(
        self,
        tenant_id: str,
        period: str,
        amount: int = 1,
        marker: Optional[ConditionalPut] = None,
    ) -> Optional[int]:
        """Server-side increment, optionally fused with a ledger marker."""
        return await self._store.atomic_increment(
            USAGE,
            usage_key(tenant_id, period),
            REQUEST_COUNT_FIELD,
            delta=amount,
            marker=marker,
        )
