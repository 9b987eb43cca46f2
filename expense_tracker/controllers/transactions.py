"""
Add-expense and add-income forms.

Input is validated here; a bad form produces an Alert and nothing is
written. A good form creates the record and references it from the user's
document, both in the background.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from expense_tracker.controllers.base import error_alert
from expense_tracker.gateway import DataGateway
from expense_tracker.models.records import (
    CATEGORY_PLACEHOLDER,
    EXPENSE_CATEGORIES,
    Alert,
    Expense,
    Income,
)


INVALID_EXPENSE = "Invalid expense details."
INVALID_INCOME = "Invalid income details."


def parse_amount(text: Optional[str]) -> Optional[Decimal]:
    """Amount typed by the user, or None if it isn't a finite number."""
    if text is None:
        return None
    try:
        amount = Decimal(text.strip())
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


class AddExpenseController:
    """Expense form: name, amount, category picker and date."""

    categories = EXPENSE_CATEGORIES

    def __init__(self, gateway: DataGateway):
        self._gateway = gateway
        self.selected_category: str = CATEGORY_PLACEHOLDER
        self.last_expense: Optional[Expense] = None

    def select_category(self, category: str) -> None:
        self.selected_category = category

    def submit(
        self,
        name: Optional[str],
        amount_text: Optional[str],
        date: Optional[datetime] = None,
        category: Optional[str] = None,
    ) -> Optional[Alert]:
        """Returns an Alert when the form is invalid, otherwise None."""
        if category is not None:
            self.select_category(category)

        amount = parse_amount(amount_text)
        chosen = self.selected_category
        if name is None or amount is None or not chosen or chosen == CATEGORY_PLACEHOLDER:
            return error_alert(INVALID_EXPENSE)

        expense = self._gateway.add_expense(
            name=name,
            category=chosen,
            amount=amount,
            date=date or datetime.now(),
        )
        self._gateway.add_expense_to_user(expense)
        self.last_expense = expense
        return None


class AddIncomeController:
    """Income form: amount and date."""

    def __init__(self, gateway: DataGateway):
        self._gateway = gateway
        self.last_income: Optional[Income] = None

    def submit(
        self,
        amount_text: Optional[str],
        date: Optional[datetime] = None,
    ) -> Optional[Alert]:
        amount = parse_amount(amount_text)
        if amount is None:
            return error_alert(INVALID_INCOME)

        income = self._gateway.add_income(amount=amount, date=date or datetime.now())
        self._gateway.add_income_to_user(income)
        self.last_income = income
        return None
