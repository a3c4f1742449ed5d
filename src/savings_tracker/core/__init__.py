"""Core utilities and shared functionality."""

from savings_tracker.core.timezone import (
    now_utc,
    to_utc,
    parse_datetime_utc,
    month_label,
    UTC,
)
from savings_tracker.core.exceptions import (
    AppError,
    ValidationError,
    NotFoundError,
    StateError,
    RateUnavailableError,
)

__all__ = [
    "now_utc",
    "to_utc",
    "parse_datetime_utc",
    "month_label",
    "UTC",
    "AppError",
    "ValidationError",
    "NotFoundError",
    "StateError",
    "RateUnavailableError",
]
