"""
Document Store Package

Provides the abstract interface plus a Google Sheets backend for production
and an in-memory backend for offline use and tests.
"""

from expense_tracker.services.database.interface import (
    EXPENSE_COLLECTION,
    EXPENSES_FIELD,
    INCOME_COLLECTION,
    INCOMES_FIELD,
    USERS_COLLECTION,
    AuthenticationError,
    DatabaseConnectionError,
    DatabaseError,
    DatabaseInterface,
    EmailAlreadyInUseError,
    InvalidEmailError,
    NotFoundError,
    PersistenceReadError,
    PersistenceWriteError,
    UserNotFoundError,
    WeakPasswordError,
    WrongPasswordError,
)
from expense_tracker.services.database.memory import InMemoryDatabase
from expense_tracker.services.database.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsDatabase,
)

__all__ = [
    # Collections and fields
    "EXPENSE_COLLECTION",
    "EXPENSES_FIELD",
    "INCOME_COLLECTION",
    "INCOMES_FIELD",
    "USERS_COLLECTION",
    # Interface
    "DatabaseInterface",
    # Exceptions
    "AuthenticationError",
    "DatabaseConnectionError",
    "DatabaseError",
    "EmailAlreadyInUseError",
    "InvalidEmailError",
    "NotFoundError",
    "PersistenceReadError",
    "PersistenceWriteError",
    "UserNotFoundError",
    "WeakPasswordError",
    "WrongPasswordError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsDatabase",
    "InMemoryDatabase",
]
