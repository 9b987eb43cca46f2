"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
"""

from expense_tracker.models.records import (
    CATEGORY_PLACEHOLDER,
    CURRENCIES,
    CURRENCY_NAMES,
    EXPENSE_CATEGORIES,
    Alert,
    AuthUser,
    CategoryTotal,
    DatabaseChange,
    Expense,
    Income,
    ListenerType,
    Period,
    Savings,
    User,
    UserDocument,
)
from expense_tracker.models.exchange import (
    ExchangeRateResponse,
    ExchangeRateSnapshot,
)

__all__ = [
    # Constants
    "CATEGORY_PLACEHOLDER",
    "CURRENCIES",
    "CURRENCY_NAMES",
    "EXPENSE_CATEGORIES",
    # Record models
    "Alert",
    "AuthUser",
    "CategoryTotal",
    "DatabaseChange",
    "Expense",
    "Income",
    "ListenerType",
    "Period",
    "Savings",
    "User",
    "UserDocument",
    # Exchange rate models
    "ExchangeRateResponse",
    "ExchangeRateSnapshot",
]
