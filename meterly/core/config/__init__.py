"""Configuration module for the Meterly pipeline.

Provides centralized configuration management with type-safe enums.

Usage:
    from meterly.core.config import settings, KeyValueBackendType

    if settings.KV_BACKEND == KeyValueBackendType.REDIS:
        ...
"""

from meterly.core.config.enums import (
    BlobBackendType,
    Environment,
    EventBusBackendType,
    KeyValueBackendType,
    UsagePeriodSource,
)
from meterly.core.config.settings import Settings

__all__ = [
    "BlobBackendType",
    "Environment",
    "EventBusBackendType",
    "KeyValueBackendType",
    "Settings",
    "UsagePeriodSource",
    "settings",
]

# Singleton settings instance
settings = Settings()
