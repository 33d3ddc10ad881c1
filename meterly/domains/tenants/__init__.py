"""Tenants domain: registration, lookup and paging. Read-only to the pipeline."""
