"""Tenant service: registration and lookup for the HTTP boundary."""

from meterly.core.logging import logger
from meterly.domains.tenants.repository import TenantRepositoryProtocol
from meterly.domains.tenants.types import TenantNotFoundError
from meterly.schemas.tenant import Tenant, TenantCreate


class TenantService:
    """Creates and reads tenants."""

    def __init__(self, tenant_repo: TenantRepositoryProtocol) -> None:
        """Initialize with the tenant repository."""
        self._tenants = tenant_repo

    async def create(self, tenant_in: TenantCreate) -> Tenant:
        """Register a tenant on the FREE plan."""
        tenant = Tenant(
            name=tenant_in.name,
            webhook_url=str(tenant_in.webhook_url) if tenant_in.webhook_url else None,
        )
        await self._tenants.put(tenant)
        logger.with_context(tenant_id=tenant.tenant_id).info(f"Created tenant '{tenant.name}'")
        return tenant

    async def get(self, tenant_id: str) -> Tenant:
        """Fetch a tenant.

        Raises:
            TenantNotFoundError: If no tenant has this id.
        """
        tenant = await self._tenants.get(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)
        return tenant
