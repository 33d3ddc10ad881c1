"""Document rendering adapters."""

from meterly.adapters.documents.pdf import ReportLabInvoiceRenderer

__all__ = ["ReportLabInvoiceRenderer"]
