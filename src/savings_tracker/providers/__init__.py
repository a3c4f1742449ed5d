"""Exchange rate providers module."""

from savings_tracker.providers.rate_provider import RateProvider
from savings_tracker.providers.stub_provider import StubRateProvider

__all__ = [
    "RateProvider",
    "StubRateProvider",
]
