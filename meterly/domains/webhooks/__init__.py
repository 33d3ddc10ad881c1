"""Webhooks domain: invoice.ready notifications to tenant endpoints."""
