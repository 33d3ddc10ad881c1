"""Fake tenant repository for testing."""

from typing import Optional

from meterly.domains.tenants.repository import TenantRepositoryProtocol
from meterly.schemas.tenant import Tenant


class FakeTenantRepository(TenantRepositoryProtocol):
    """In-memory tenant repository with call tracking.

    Usage:
        repo = FakeTenantRepository()
        repo.seed(Tenant(tenant_id="t-1", name="Acme"))
    """

    def __init__(self) -> None:
        """Initialize empty state."""
        self._tenants: dict[str, Tenant] = {}
        self._calls: list[tuple[str, tuple]] = []

    def seed(self, *tenants: Tenant) -> None:
        """Add tenants without recording calls."""
        for tenant in tenants:
            self._tenants[tenant.tenant_id] = tenant

    def call_count(self, method: str) -> int:
        """Number of calls to ``method``."""
        return sum(1 for name, _ in self._calls if name == method)

    async def get(self, tenant_id: str) -> Optional[Tenant]:
        """Fetch a seeded tenant."""
        self._calls.append(("get", (tenant_id,)))
        return self._tenants.get(tenant_id)

    async def put(self, tenant: Tenant) -> None:
        """Store a tenant."""
        self._calls.append(("put", (tenant.tenant_id,)))
        self._tenants[tenant.tenant_id] = tenant

    async def list_page(
        self, cursor: Optional[str] = None, limit: int = 100
    ) -> tuple[list[Tenant], Optional[str]]:
        """Page through tenants in id order; the cursor is the last id returned."""
        self._calls.append(("list_page", (cursor, limit)))
        ids = sorted(i for i in self._tenants if cursor is None or i > cursor)
        page = ids[:limit]
        next_cursor = page[-1] if len(ids) > limit else None
        return [self._tenants[i] for i in page], next_cursor
