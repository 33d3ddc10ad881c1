"""Core protocols for dependency injection.

Cross-cutting infrastructure protocols. Domain-specific protocols
(repositories, the idempotency ledger) live in their domains/ packages.
"""

from meterly.core.protocols.blob_store import BlobStore
from meterly.core.protocols.documents import InvoiceDocumentRenderer
from meterly.core.protocols.event_bus import (
    Delivery,
    EventBus,
    EventHandler,
    EventSubscriber,
)
from meterly.core.protocols.kv_store import ConditionalPut, Item, KeyValueStore, Page
from meterly.core.protocols.webhooks import WebhookSender

__all__ = [
    "BlobStore",
    "ConditionalPut",
    "Delivery",
    "EventBus",
    "EventHandler",
    "EventSubscriber",
    "InvoiceDocumentRenderer",
    "Item",
    "KeyValueStore",
    "Page",
    "WebhookSender",
]
