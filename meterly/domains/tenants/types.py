"""Tenant domain types."""

from meterly.core.exceptions import NotFoundException


class TenantNotFoundError(NotFoundException):
    """Raised when a tenant referenced by an event or request does not exist."""

    def __init__(self, tenant_id: str):
        """Initialize with the missing tenant id."""
        self.tenant_id = tenant_id
        super().__init__(f"Tenant {tenant_id} not found")
