"""
Core Data Models for Expense Tracker

These models define the schemas for everything that flows between the
document store, the aggregation functions and the controllers.

DESIGN DECISION: Categories are free-form strings and amounts carry no
sign constraint. The picker offers a fixed list, but nothing downstream
relies on a record using one of those values.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================

class DatabaseChange(str, Enum):
    """Kind of change delivered to listeners."""
    ADD = "add"
    REMOVE = "remove"
    UPDATE = "update"


class ListenerType(str, Enum):
    """
    Interest scope of a listener.

    ALL listeners receive every notification; USERS listeners only receive
    user data (expenses and incomes) changes.
    """
    USERS = "users"
    ALL = "all"


class Period(str, Enum):
    """Calendar granularity used to bucket dated records."""
    DAY = "day"
    MONTH = "month"
    YEAR = "year"
    ALL = "all"


# Offered in the add-expense picker. The first entry is a placeholder.
CATEGORY_PLACEHOLDER = "Select a category"
EXPENSE_CATEGORIES = [
    CATEGORY_PLACEHOLDER,
    "Rent/Mortgage",
    "Food",
    "Groceries",
    "Transportation",
    "Healthcare",
    "Utilities",
    "Entertainment",
    "Insurance",
    "Accessories",
    "Investments",
    "Subscriptions",
    "Travel",
    "Other",
]

CURRENCIES = ["AUD", "USD", "EUR", "CNY", "AED", "HKD", "JPY"]

CURRENCY_NAMES = {
    "AUD": "Australian Dollar",
    "USD": "US Dollar",
    "EUR": "Euro",
    "HKD": "Hong Kong Dollar",
    "JPY": "Japanese Yen",
    "AED": "Dirham",
    "CNY": "Chinese Renminbi",
}


# =============================================================================
# STORED RECORDS
# =============================================================================

class Expense(BaseModel):
    """
    A single expense.

    `id` is assigned by the document store when the record is created.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = Field(
        default=None,
        description="Free-form category; missing categories group under ''"
    )
    amount: Decimal
    date: datetime


class Income(BaseModel):
    """A single income entry."""

    id: Optional[str] = None
    amount: Decimal
    date: datetime


class AuthUser(BaseModel):
    """The authenticated principal."""

    id: str
    email: str


class UserDocument(BaseModel):
    """
    A user as stored: identity plus references into the expense and
    income collections.
    """

    id: str
    email: str
    expense_ids: list[str] = Field(default_factory=list)
    income_ids: list[str] = Field(default_factory=list)

    @property
    def reference_count(self) -> int:
        return len(self.expense_ids) + len(self.income_ids)


class User(BaseModel):
    """A user with every reference resolved into a full record."""

    id: Optional[str] = None
    email: Optional[str] = None
    expenses: list[Expense] = Field(default_factory=list)
    incomes: list[Income] = Field(default_factory=list)


# =============================================================================
# DERIVED VIEWS (never persisted)
# =============================================================================

class CategoryTotal(BaseModel):
    """Sum of expense amounts for one category."""

    category: str
    amount: Decimal


class Savings(BaseModel):
    """Income minus expenses for one period."""

    period: Period
    reference_date: date = Field(
        ...,
        description="Date the bar is labelled with"
    )
    amount: Decimal


class Alert(BaseModel):
    """A modal message a controller wants shown to the user."""

    title: str = "Error"
    message: str
