"""Application settings.

All values are loaded from environment variables (or a ``.env`` file) via
Pydantic Settings. Defaults target local development: in-memory store and
bus, filesystem blob storage.
"""

from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from meterly.core.config.enums import (
    BlobBackendType,
    Environment,
    EventBusBackendType,
    KeyValueBackendType,
    UsagePeriodSource,
)


class Settings(BaseSettings):
    """Meterly settings.

    Attributes:
    ----------
        ENVIRONMENT: Deployment environment; drives log formatting.
        LOG_LEVEL: Root log level.
        KV_BACKEND: Key-value store implementation.
        EVENT_BUS_BACKEND: Event bus transport.
        BLOB_BACKEND: Where rendered invoice PDFs are stored.
        EVENT_MAX_DELIVERIES: Redelivery ceiling before a message is dead-lettered.
        EVENT_STREAM_MAXLEN: Approximate length cap applied to each event stream.
        USAGE_PERIOD_SOURCE: Clock used to bucket consumption into periods.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )

    PROJECT_NAME: str = "Meterly"
    ENVIRONMENT: Environment = Environment.LOCAL
    LOG_LEVEL: str = "INFO"
    API_V1_PREFIX: str = "/v1"

    # Backends
    KV_BACKEND: KeyValueBackendType = KeyValueBackendType.MEMORY
    EVENT_BUS_BACKEND: EventBusBackendType = EventBusBackendType.MEMORY
    BLOB_BACKEND: BlobBackendType = BlobBackendType.FILESYSTEM

    # Redis (key-value store and stream transport)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None
    REDIS_KEY_PREFIX: str = "meterly"

    # Delivery
    EVENT_MAX_DELIVERIES: int = Field(3, ge=1)
    EVENT_RETRY_MIN_WAIT_SECONDS: float = Field(0.5, ge=0)
    EVENT_RETRY_MAX_WAIT_SECONDS: float = Field(10.0, ge=0)
    EVENT_VISIBILITY_TIMEOUT_SECONDS: float = Field(30.0, gt=0)
    EVENT_CONSUMER_NAME: str = "worker-1"
    EVENT_STREAM_MAXLEN: int = Field(100_000, ge=1)

    # Blob storage
    INVOICE_BUCKET: str = "meterly-invoices"
    AWS_REGION: str = "us-east-1"
    S3_ENDPOINT_URL: Optional[str] = None
    LOCAL_BLOB_PATH: str = "local_storage"
    LOCAL_BLOB_BASE_URL: str = "http://localhost:8001/files"

    # Stages
    WEBHOOK_TIMEOUT_SECONDS: float = Field(10.0, gt=0)
    BILLING_RUN_INTERVAL_SECONDS: float = Field(3600.0, gt=0)
    BILLING_PAGE_SIZE: int = Field(100, ge=1)
    IDEMPOTENCY_CLAIM_TTL_SECONDS: float = Field(300.0, gt=0)
    USAGE_PERIOD_SOURCE: UsagePeriodSource = UsagePeriodSource.PROCESSING

    @model_validator(mode="after")
    def validate_retry_window(self) -> "Settings":
        """Ensure the backoff window is ordered."""
        if self.EVENT_RETRY_MIN_WAIT_SECONDS > self.EVENT_RETRY_MAX_WAIT_SECONDS:
            raise ValueError(
                "EVENT_RETRY_MIN_WAIT_SECONDS must not exceed EVENT_RETRY_MAX_WAIT_SECONDS"
            )
        return self

    @property
    def redis_url(self) -> str:
        """Build the Redis connection URL."""
        if self.REDIS_PASSWORD:
            from urllib.parse import quote

            encoded_pwd = quote(self.REDIS_PASSWORD, safe="")
            return f"redis://:{encoded_pwd}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
