"""Invoices domain: invoice persistence, document content and the InvoiceRenderer."""
