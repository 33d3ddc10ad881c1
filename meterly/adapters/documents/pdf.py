"""ReportLab invoice renderer.

Implements the InvoiceDocumentRenderer protocol. ReportLab is synchronous and
CPU-bound, so drawing runs in a worker thread.
"""

import asyncio
import io
import logging

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas as pdf_canvas

from meterly.domains.invoices.types import PDF_CONTENT_TYPE, InvoiceDocument

logger = logging.getLogger(__name__)


class ReportLabInvoiceRenderer:
    """Lay an invoice document out on a single A4 page."""

    content_type = PDF_CONTENT_TYPE

    def __init__(self, margin: float = 50, line_height: float = 20):
        """Initialize page geometry (points)."""
        self.margin = margin
        self.line_height = line_height

    def _draw(self, document: InvoiceDocument) -> bytes:
        buf = io.BytesIO()
        c = pdf_canvas.Canvas(buf, pagesize=A4)
        c.setTitle(f"{document.title} {document.invoice_id}")
        _w, h = A4
        y = h - self.margin

        c.setFont("Helvetica-Bold", 20)
        c.drawString(self.margin, y, document.title)
        y -= self.line_height * 2

        c.setFont("Helvetica", 12)
        for line in document.lines():
            c.drawString(self.margin, y, line)
            y -= self.line_height

        c.showPage()
        c.save()
        return buf.getvalue()

    async def render(self, document: InvoiceDocument) -> bytes:
        """Render the document to PDF bytes."""
        data = await asyncio.to_thread(self._draw, document)
        logger.debug(f"Rendered invoice {document.invoice_id} ({len(data)} bytes)")
        return data
