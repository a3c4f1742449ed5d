"""Timezone utilities. All ledger timestamps are UTC."""

from datetime import datetime
from typing import Optional

import pytz
from dateutil import parser as date_parser

UTC = pytz.utc


def now_utc() -> datetime:
    """Return current time in UTC."""
    return datetime.now(UTC)


def to_utc(dt: datetime) -> datetime:
    """Convert a datetime to UTC."""
    if dt.tzinfo is None:
        # Naive values (e.g. read back from SQLite) are stored as UTC
        return UTC.localize(dt)
    return dt.astimezone(UTC)


def to_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Return a naive UTC datetime for storage (SQLite has no timezone support)."""
    if dt is None:
        return None
    return to_utc(dt).replace(tzinfo=None)


def parse_datetime_utc(value: str, default_tz: Optional[pytz.BaseTzInfo] = None) -> datetime:
    """
    Parse a datetime string and return it in UTC.

    If no timezone is provided in the string, assumes UTC.
    """
    dt = date_parser.parse(value)
    if dt.tzinfo is None:
        tz = default_tz or UTC
        dt = tz.localize(dt)
    return to_utc(dt)


def month_label(dt: datetime) -> str:
    """Return the tracking period label (YYYY-MM) for a timestamp, in UTC."""
    return to_utc(dt).strftime("%Y-%m")
