"""WebhookSender protocol for outbound tenant notifications."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class WebhookSender(Protocol):
    """Delivers a JSON notification to a tenant endpoint.

    Implementations:
    - HttpWebhookSender: adapters/webhooks/http.py
    - FakeWebhookSender: adapters/webhooks/fake.py (tests)
    """

    async def send(self, url: str, payload: dict[str, Any], idempotency_key: str) -> None:
        """POST ``payload`` as JSON to ``url``.

        Raises:
            WebhookDeliveryError: On a non-2xx response or a network failure.
        """
        ...
