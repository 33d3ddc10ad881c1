"""HTTP webhook sender.

POSTs JSON notifications to tenant endpoints with httpx. Implements the
WebhookSender protocol.
"""

import logging
from typing import Any

import httpx

from meterly.core.protocols.webhooks import WebhookSender
from meterly.domains.webhooks.types import WebhookDeliveryError

logger = logging.getLogger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"


class HttpWebhookSender(WebhookSender):
    """Deliver notifications over HTTP.

    Any 2xx response is a successful delivery. Everything else, including
    timeouts and connection failures, raises WebhookDeliveryError so the
    event bus redelivers the InvoiceReady event.
    """

    def __init__(self, timeout: float = 10.0):
        """Initialize with a per-request timeout in seconds."""
        self.timeout = timeout

    async def send(self, url: str, payload: dict[str, Any], idempotency_key: str) -> None:
        """POST ``payload`` as JSON to ``url``.

        Args:
            url: Tenant webhook endpoint.
            payload: JSON-serializable notification body.
            idempotency_key: Sent as the Idempotency-Key header; identical on redelivery.

        Raises:
            WebhookDeliveryError: If the endpoint is unreachable or answers non-2xx.
        """
        headers = {
            "Content-Type": "application/json",
            IDEMPOTENCY_HEADER: idempotency_key,
        }
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(url, json=payload, headers=headers)
            except httpx.TimeoutException as exc:
                raise WebhookDeliveryError(
                    f"Endpoint did not respond within {self.timeout:g} seconds"
                ) from exc
            except httpx.HTTPError as exc:
                raise WebhookDeliveryError(f"Failed to reach endpoint: {exc}") from exc

        if not response.is_success:
            raise WebhookDeliveryError(
                f"Webhook delivery failed: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        logger.debug(f"Webhook delivered to {url} ({response.status_code})")
