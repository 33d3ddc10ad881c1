"""Calendar-month period keys.

Usage and billing are bucketed by period keys of the form ``YYYY-MM``,
always computed in UTC. Pure functions, no IO.
"""

import calendar
import re
from datetime import date, datetime, timezone
from typing import Optional

from meterly.core.exceptions import InvalidInputError

_PERIOD_RE = re.compile(r"([0-9]{4})-([0-9]{2})")


class InvalidPeriodError(InvalidInputError):
    """Raised when a period key is not a valid ``YYYY-MM`` month."""

    def __init__(self, period: str):
        """Initialize with the rejected period key."""
        self.period = period
        super().__init__(f"Invalid period {period!r}: expected YYYY-MM")


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def period_key(moment: Optional[datetime] = None) -> str:
    """Return the period key containing ``moment`` (default: now).

    Naive datetimes are treated as UTC.
    """
    moment = _as_utc(moment or datetime.now(timezone.utc))
    return f"{moment.year:04d}-{moment.month:02d}"


def parse_period(period: str) -> tuple[int, int]:
    """Split a period key into ``(year, month)``.

    Raises:
        InvalidPeriodError: If the key is malformed or the month is out of range.
    """
    match = _PERIOD_RE.fullmatch(period or "")
    if not match:
        raise InvalidPeriodError(period)
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12 or year < 1:
        raise InvalidPeriodError(period)
    return year, month


def previous_period(moment: Optional[datetime] = None) -> str:
    """Return the period key of the month before the one containing ``moment``."""
    moment = _as_utc(moment or datetime.now(timezone.utc))
    if moment.month == 1:
        return f"{moment.year - 1:04d}-12"
    return f"{moment.year:04d}-{moment.month - 1:02d}"


def period_bounds(period: str) -> tuple[date, date]:
    """Return the first and last calendar day of a period.

    Handles every month length, including February in leap years.
    """
    year, month = parse_period(period)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)
