"""Infrastructure adapters.

Adapters implement protocols defined in core/protocols/.
Each adapter wraps external infrastructure (Redis, S3, ReportLab, HTTP, etc.).
"""
