"""Enumerations for domain models."""

from enum import Enum


class PeriodStatus(str, Enum):
    """Tracking period lifecycle states (draft -> executing -> closed)."""

    DRAFT = "draft"
    EXECUTING = "executing"
    CLOSED = "closed"


class SnapshotKind(str, Enum):
    """Why an allocation snapshot was written."""

    CHANGE = "change"  # explicit allocation edit
    AUTO_TRACK = "auto_track"  # dedicated asset followed its balance
    BASELINE = "baseline"  # seeded at start of tracking; records a pre-existing value


class EventSource(str, Enum):
    """Origin of a derived contribution event."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    REALLOCATION = "reallocation"
