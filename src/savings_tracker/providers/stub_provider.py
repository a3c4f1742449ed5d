"""Stub exchange rate provider for offline/testing use."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from savings_tracker.core.timezone import now_utc


# Units of quote currency per 1 USD
_STUB_USD_RATES: dict[str, Decimal] = {
    "USD": Decimal("1"),
    "EUR": Decimal("0.92"),
    "GBP": Decimal("0.79"),
    "CHF": Decimal("0.88"),
    "JPY": Decimal("150"),
    "CAD": Decimal("1.36"),
    "AUD": Decimal("1.52"),
    "BTC": Decimal("0.000016"),
    "ETH": Decimal("0.00031"),
}


class StubRateProvider:
    """
    Stub provider with a fixed rate table (cross rates through USD).

    Extra or overriding pairs can be passed as {(FROM, TO): rate}.
    """

    def __init__(self, rates: Optional[dict[tuple[str, str], Decimal]] = None):
        self._overrides = {
            (src.upper(), dst.upper()): Decimal(str(rate))
            for (src, dst), rate in (rates or {}).items()
        }
        self.calls = 0

    def get_rate(
        self,
        from_currency: str,
        to_currency: str,
        as_of: datetime,
    ) -> Optional[tuple[Decimal, datetime]]:
        """Return the stub rate, or None for unknown currencies."""
        self.calls += 1
        src, dst = from_currency.upper(), to_currency.upper()

        if (src, dst) in self._overrides:
            return self._overrides[(src, dst)], now_utc()
        if src not in _STUB_USD_RATES or dst not in _STUB_USD_RATES:
            return None
        return _STUB_USD_RATES[dst] / _STUB_USD_RATES[src], now_utc()
