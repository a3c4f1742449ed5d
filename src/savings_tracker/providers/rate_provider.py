"""Exchange rate provider protocol."""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Protocol


class RateProvider(Protocol):
    """
    Protocol for exchange rate providers.

    Implementations return the rate for converting one unit of `from_currency`
    into `to_currency`, together with the time the rate was observed.
    """

    def get_rate(
        self,
        from_currency: str,
        to_currency: str,
        as_of: datetime,
    ) -> Optional[tuple[Decimal, datetime]]:
        """
        Fetch a single rate.

        Returns None when the pair is not quoted. Transport failures are
        raised to the caller.
        """
        ...
