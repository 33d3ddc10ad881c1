"""Meterly: per-tenant usage metering and invoicing pipeline."""

__version__ = "0.1.0"
