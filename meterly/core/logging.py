"""Logging for Meterly.

Exposes a module-level ``logger`` and the ``ContextualLogger`` adapter. Stages
attach identity dimensions (``event_id``, ``tenant_id``, ``invoice_id``) with
``logger.with_context(...)``; the dimensions are rendered with every record.

Outside the local environment records are emitted as single-line JSON so they
can be shipped to a log aggregator as-is.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, MutableMapping

from meterly.core.config import settings
from meterly.core.config.enums import Environment

_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that carries a dict of context dimensions.

    Usage:
        log = logger.with_context(event_id=str(event.event_id))
        log.info("Processing event")
        log = log.with_context(tenant_id="t-1")  # dimensions accumulate
    """

    def __init__(self, logger: logging.Logger, dimensions: dict[str, Any] | None = None):
        """Wrap ``logger`` with the given dimensions."""
        super().__init__(logger, dimensions or {})
        self.dimensions: dict[str, Any] = dict(dimensions or {})

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        """Merge the adapter dimensions into the record's ``extra``."""
        extra = dict(self.dimensions)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a new logger with additional dimensions."""
        merged = {**self.dimensions, **{k: v for k, v in dimensions.items() if v is not None}}
        return ContextualLogger(self.logger, merged)


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}


class JSONFormatter(logging.Formatter):
    """Format records as single-line JSON documents."""

    def format(self, record: logging.LogRecord) -> str:
        """Serialize the record, its context dimensions and any exception."""
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_extra_fields(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ContextFormatter(logging.Formatter):
    """Human-readable formatter that appends context dimensions."""

    def format(self, record: logging.LogRecord) -> str:
        """Render the standard line followed by ``key=value`` dimensions."""
        line = super().format(record)
        extra = _extra_fields(record)
        if extra:
            dims = " ".join(f"{k}={v}" for k, v in sorted(extra.items()))
            line = f"{line} [{dims}]"
        return line


def _configure_root() -> logging.Logger:
    base = logging.getLogger("meterly")
    if base.handlers:
        return base

    handler = logging.StreamHandler(sys.stdout)
    if settings.ENVIRONMENT == Environment.LOCAL:
        handler.setFormatter(
            ContextFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    else:
        handler.setFormatter(JSONFormatter())

    base.addHandler(handler)
    base.setLevel(settings.LOG_LEVEL.upper())
    return base


logger = ContextualLogger(_configure_root())
