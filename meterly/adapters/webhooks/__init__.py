"""Webhook adapters."""

from meterly.adapters.webhooks.http import HttpWebhookSender

__all__ = ["HttpWebhookSender"]
