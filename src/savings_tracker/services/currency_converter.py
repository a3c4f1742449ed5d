"""Currency conversion with a TTL rate cache."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from savings_tracker.core.exceptions import RateUnavailableError
from savings_tracker.core.timezone import now_utc
from savings_tracker.domain.views import ConversionResult
from savings_tracker.providers.rate_provider import RateProvider

logger = logging.getLogger(__name__)


class CurrencyConverter:
    """
    Converts asset amounts into goal currencies.

    Wraps a rate provider with a per-pair cache ("FROM->TO"). A stale cached
    rate is served when the provider fails; with no cached rate the failure
    propagates.
    """

    def __init__(
        self,
        provider: RateProvider,
        cache_ttl_seconds: int = 300,
    ):
        self._provider = provider
        self._cache_ttl = cache_ttl_seconds
        self._rate_cache: dict[str, tuple[Decimal, datetime]] = {}
        self._cache_time: dict[str, datetime] = {}

    def convert(
        self,
        amount: Decimal,
        from_currency: str,
        to_currency: str,
        as_of: Optional[datetime] = None,
    ) -> ConversionResult:
        """
        Convert `amount` and report the rate used.

        Raises RateUnavailableError when the provider has no rate for the pair.
        """
        as_of = as_of or now_utc()
        src, dst = from_currency.upper(), to_currency.upper()
        if src == dst:
            return ConversionResult(amount=amount, rate=Decimal("1"), rate_timestamp=as_of)

        rate, rate_timestamp = self.get_rate(src, dst, as_of)
        return ConversionResult(amount=amount * rate, rate=rate, rate_timestamp=rate_timestamp)

    def get_rate(self, from_currency: str, to_currency: str, as_of: datetime) -> tuple[Decimal, datetime]:
        """Fetch a rate through the cache."""
        key = f"{from_currency}->{to_currency}"
        if self._is_cache_valid(key):
            return self._rate_cache[key]

        try:
            quote = self._provider.get_rate(from_currency, to_currency, as_of)
        except Exception:
            if key in self._rate_cache:
                logger.warning("Rate provider failed for %s; using cached rate", key)
                return self._rate_cache[key]
            raise

        if quote is None:
            logger.warning("No exchange rate for %s", key)
            raise RateUnavailableError(from_currency, to_currency)

        self._rate_cache[key] = quote
        self._cache_time[key] = now_utc()
        return quote

    def clear_cache(self) -> None:
        self._rate_cache.clear()
        self._cache_time.clear()

    def _is_cache_valid(self, key: str) -> bool:
        """Check if the cached rate is within TTL."""
        cached_at = self._cache_time.get(key)
        if not cached_at:
            return False
        elapsed = (now_utc() - cached_at).total_seconds()
        return elapsed < self._cache_ttl
