"""Tenant schemas.

Tenants are owned by the tenant boundary; the pipeline only reads them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import Field, HttpUrl, field_validator

from meterly.schemas._base import CamelModel


class Plan(str, Enum):
    """Subscription plans."""

    FREE = "FREE"


class TenantCreate(CamelModel):
    """Request body for registering a tenant."""

    name: str = Field(..., description="Display name printed on invoices")
    webhook_url: Optional[HttpUrl] = Field(
        None, description="Endpoint notified when an invoice is ready"
    )

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        """Strip whitespace and reject empty names."""
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value


class Tenant(CamelModel):
    """A metered tenant."""

    tenant_id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    plan: Plan = Plan.FREE
    webhook_url: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {
        "json_schema_extra": {
            "example": {
                "tenantId": "0b6c3c1e-4d8e-4f0a-9b5e-2f1c6d7a8e90",
                "name": "Acme Corp",
                "plan": "FREE",
                "webhookUrl": "https://acme.example.com/hooks/invoices",
                "createdAt": "2024-03-01T09:45:32Z",
            }
        }
    }
