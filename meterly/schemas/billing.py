"""Billing run schemas."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from meterly.schemas._base import CamelModel


class BillingRunStatus(str, Enum):
    """Billing run checkpoint status."""

    RUNNING = "running"
    COMPLETED = "completed"


class BillingRunCheckpoint(CamelModel):
    """Resumable progress marker for a billing run over one period."""

    period: str
    cursor: Optional[str] = None
    status: BillingRunStatus = BillingRunStatus.RUNNING
    tenants_processed: int = 0
    invoices_created: int = 0
    updated_at: datetime


class BillingRunRequest(CamelModel):
    """Request body for triggering a billing run."""

    period: Optional[str] = Field(
        None, description="Month to bill (YYYY-MM). Defaults to the previous month."
    )


class BillingRunResult(CamelModel):
    """Outcome of a billing run."""

    period: str
    tenants_processed: int = 0
    invoices_created: int = 0
    invoices_republished: int = 0
    invoices_skipped: int = 0
    resumed: bool = False
    already_completed: bool = False
