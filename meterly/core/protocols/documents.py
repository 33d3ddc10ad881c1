"""InvoiceDocumentRenderer protocol: lays an invoice document out as PDF bytes."""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from meterly.domains.invoices.types import InvoiceDocument


@runtime_checkable
class InvoiceDocumentRenderer(Protocol):
    """Renders an ``InvoiceDocument`` to a binary artifact."""

    content_type: str

    async def render(self, document: "InvoiceDocument") -> bytes:
        """Render the document and return the artifact bytes."""
        ...
