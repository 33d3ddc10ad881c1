"""Fake implementations for tenant domain testing."""

from meterly.domains.tenants.fakes.repository import FakeTenantRepository

__all__ = ["FakeTenantRepository"]
