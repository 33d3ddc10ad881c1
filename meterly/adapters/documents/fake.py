"""Fake invoice renderer for testing."""

from meterly.domains.invoices.types import PDF_CONTENT_TYPE, InvoiceDocument


class FakeInvoiceRenderer:
    """Test implementation of InvoiceDocumentRenderer.

    Returns the document lines as UTF-8 text so tests can assert on content.
    """

    content_type = PDF_CONTENT_TYPE

    def __init__(self) -> None:
        """Initialize with no rendered documents."""
        self.rendered: list[InvoiceDocument] = []

    async def render(self, document: InvoiceDocument) -> bytes:
        """Record the document and return its text."""
        self.rendered.append(document)
        return "\n".join([document.title, *document.lines()]).encode("utf-8")
