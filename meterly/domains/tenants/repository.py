"""Tenant repository over the key-value store."""

from typing import Optional, Protocol

from meterly.core.constants.tables import TENANTS
from meterly.core.protocols.kv_store import KeyValueStore
from meterly.schemas.tenant import Tenant


class TenantRepositoryProtocol(Protocol):
    """Data access for tenants."""

    async def get(self, tenant_id: str) -> Optional[Tenant]:
        """Fetch a tenant, or None."""
        ...

    async def put(self, tenant: Tenant) -> None:
        """Insert or replace a tenant."""
        ...

    async def list_page(
        self, cursor: Optional[str] = None, limit: int = 100
    ) -> tuple[list[Tenant], Optional[str]]:
        """Return one page of tenants and the cursor of the next page (None at the end)."""
        ...


class TenantRepository(TenantRepositoryProtocol):
    """Stores tenants in the ``tenants`` table keyed by tenant id."""

    def __init__(self, store: KeyValueStore) -> None:
        """Initialize with the backing store."""
        self._store = store

    async def get(self, tenant_id: str) -> Optional[Tenant]:
        """Fetch a tenant, or None."""
        item = await self._store.get(TENANTS, tenant_id)
        return Tenant.model_validate(item) if item else None

    async def put(self, tenant: Tenant) -> None:
        """Insert or replace a tenant."""
        await self._store.put(TENANTS, tenant.tenant_id, tenant.to_item())

    async def list_page(
        self, cursor: Optional[str] = None, limit: int = 100
    ) -> tuple[list[Tenant], Optional[str]]:
        """Return one page of tenants."""
        page = await self._store.scan_page(TENANTS, cursor=cursor, limit=limit)
        return [Tenant.model_validate(item) for item in page.items], page.next_cursor
