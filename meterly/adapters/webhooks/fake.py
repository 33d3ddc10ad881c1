"""Fake webhook sender for testing.

Records deliveries for assertions without touching the network.
"""

from dataclasses import dataclass
from typing import Any, Optional

from meterly.domains.webhooks.types import WebhookDeliveryError


@dataclass
class SentWebhook:
    """One recorded delivery."""

    url: str
    payload: dict[str, Any]
    idempotency_key: str


class FakeWebhookSender:
    """Test implementation of WebhookSender.

    Usage:
        fake = FakeWebhookSender()
        dispatcher = WebhookDispatcher(..., sender=fake)
        await dispatcher.handle(event)

        assert fake.sent[0].payload["event"] == "invoice.ready"

    ``fail_times`` makes the next N sends raise WebhookDeliveryError with
    ``status_code`` (a flaky endpoint); the attempts are still recorded.
    """

    def __init__(self) -> None:
        """Initialize with no deliveries."""
        self.sent: list[SentWebhook] = []
        self.attempts: list[SentWebhook] = []
        self.fail_times = 0
        self.status_code: Optional[int] = 500

    async def send(self, url: str, payload: dict[str, Any], idempotency_key: str) -> None:
        """Record the delivery, or fail if configured to."""
        record = SentWebhook(url=url, payload=dict(payload), idempotency_key=idempotency_key)
        self.attempts.append(record)
        if self.fail_times > 0:
            self.fail_times -= 1
            raise WebhookDeliveryError(
                f"Webhook delivery failed: {self.status_code}", status_code=self.status_code
            )
        self.sent.append(record)

    # Test helpers

    def sent_to(self, url: str) -> list[SentWebhook]:
        """All successful deliveries to ``url``."""
        return [s for s in self.sent if s.url == url]

    def clear(self) -> None:
        """Forget all deliveries."""
        self.sent.clear()
        self.attempts.clear()
