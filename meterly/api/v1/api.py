"""API routes for the FastAPI application."""

from fastapi import APIRouter

from meterly.api.v1.endpoints import billing, health, invoices, tenants
from meterly.core.config import settings

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])

v1_router = APIRouter(prefix=settings.API_V1_PREFIX)
v1_router.include_router(tenants.router, prefix="/tenants", tags=["tenants"])
v1_router.include_router(billing.router, prefix="/billing", tags=["billing"])
v1_router.include_router(invoices.router, prefix="/invoices", tags=["invoices"])

api_router.include_router(v1_router)
