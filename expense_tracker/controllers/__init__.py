"""
Controllers Package

UI-toolkit-free state holders for each screen. They bind form input to the
gateway and listener updates to chart and table data.
"""

from expense_tracker.controllers.auth import (
    SIGN_IN_INPUT_ERROR,
    SIGN_UP_INPUT_ERROR,
    LogInController,
    SignUpController,
)
from expense_tracker.controllers.base import ListeningController, error_alert
from expense_tracker.controllers.dashboard import DashboardController
from expense_tracker.controllers.expenses import AllExpensesController, expense_detail_rows
from expense_tracker.controllers.savings import SavingsController
from expense_tracker.controllers.transactions import (
    INVALID_EXPENSE,
    INVALID_INCOME,
    AddExpenseController,
    AddIncomeController,
    parse_amount,
)

__all__ = [
    # Alert messages
    "INVALID_EXPENSE",
    "INVALID_INCOME",
    "SIGN_IN_INPUT_ERROR",
    "SIGN_UP_INPUT_ERROR",
    # Controllers
    "AddExpenseController",
    "AddIncomeController",
    "AllExpensesController",
    "DashboardController",
    "ListeningController",
    "LogInController",
    "SavingsController",
    "SignUpController",
    # Helpers
    "error_alert",
    "expense_detail_rows",
    "parse_amount",
]
