"""Services package."""

from expense_tracker.services.currency import (
    CurrencyError,
    ExchangeRateClient,
    NetworkOrDecodeError,
)
from expense_tracker.services.database import (
    AuthenticationError,
    DatabaseConnectionError,
    DatabaseError,
    DatabaseInterface,
    GoogleSheetsClient,
    GoogleSheetsDatabase,
    InMemoryDatabase,
    NotFoundError,
    PersistenceReadError,
    PersistenceWriteError,
)

__all__ = [
    # Currency services
    "CurrencyError",
    "ExchangeRateClient",
    "NetworkOrDecodeError",
    # Document store
    "AuthenticationError",
    "DatabaseConnectionError",
    "DatabaseError",
    "DatabaseInterface",
    "GoogleSheetsClient",
    "GoogleSheetsDatabase",
    "InMemoryDatabase",
    "NotFoundError",
    "PersistenceReadError",
    "PersistenceWriteError",
]
