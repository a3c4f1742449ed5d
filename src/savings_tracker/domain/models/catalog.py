"""Asset and Goal domain models."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass
class Asset:
    """
    Balance-holding entity (wallet, exchange account, bank account).

    Its balance is never stored; it is the ordered sum of its BalanceEvents.
    An asset may fund one goal (dedicated) or several (shared).
    """

    asset_id: str
    name: str
    currency: str
    created_at: Optional[datetime] = field(default=None)

    def __post_init__(self) -> None:
        self.currency = self.currency.upper()


@dataclass
class Goal:
    """Savings target funded by one or more assets."""

    goal_id: str
    name: str
    currency: str
    target_amount: Optional[Decimal] = None
    created_at: Optional[datetime] = field(default=None)

    def __post_init__(self) -> None:
        self.currency = self.currency.upper()
