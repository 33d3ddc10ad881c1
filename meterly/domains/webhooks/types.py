"""Webhook domain types."""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from meterly.core.exceptions import TransientIOError

INVOICE_READY_NOTIFICATION = "invoice.ready"


class WebhookDeliveryError(TransientIOError):
    """Raised when a tenant endpoint rejects or cannot receive a notification."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        """Create a new WebhookDeliveryError.

        Args:
        ----
            message (str): What went wrong.
            status_code (int, optional): HTTP status returned by the endpoint, if any.

        """
        self.status_code = status_code
        super().__init__(message)


class InvoiceReadyNotification(BaseModel):
    """Body POSTed to a tenant's webhook when an invoice is ready.

    Wire contract (stable):
        {"event": "invoice.ready", "invoiceId": ..., "tenantId": ...,
         "pdfUrl": ..., "timestamp": "<ISO-8601>"}
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    event: Literal["invoice.ready"] = INVOICE_READY_NOTIFICATION
    invoice_id: str
    tenant_id: str
    pdf_url: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_payload(self) -> dict:
        """Serialize to the camelCase JSON body."""
        return self.model_dump(mode="json", by_alias=True)
