"""Currency conversion services."""

from expense_tracker.services.currency.exchange_rate_api import (
    CurrencyError,
    ExchangeRateClient,
    NetworkOrDecodeError,
    normalize_currency,
)

__all__ = [
    "CurrencyError",
    "ExchangeRateClient",
    "NetworkOrDecodeError",
    "normalize_currency",
]
