"""All-expenses listing grouped by category, and the single-expense detail."""

from expense_tracker.aggregation import group_by_category
from expense_tracker.controllers.base import ListeningController
from expense_tracker.gateway import DataGateway
from expense_tracker.models.records import DatabaseChange, Expense, Income


DETAIL_DATE_FORMAT = "%d/%m/%Y at %I:%M %p"


class AllExpensesController(ListeningController):
    """One section per category, sections in alphabetical order."""

    def __init__(self, gateway: DataGateway):
        super().__init__(gateway)
        self._groups: dict[str, list[Expense]] = {}

    def on_data_change(
        self,
        change: DatabaseChange,
        expenses: list[Expense],
        incomes: list[Income],
    ) -> None:
        super().on_data_change(change, expenses, incomes)
        self._groups = group_by_category(expenses)

    @property
    def categories(self) -> list[str]:
        return list(self._groups)

    def expenses_for(self, category: str) -> list[Expense]:
        return list(self._groups.get(category, []))


def expense_detail_rows(expense: Expense) -> list[str]:
    """Name, category, amount and date lines for the detail screen."""
    return [
        f"Name: {expense.name or ''}",
        f"Category: {expense.category or ''}",
        f"Amount: ${expense.amount:.2f}",
        f"Date of Transaction: {expense.date.strftime(DETAIL_DATE_FORMAT)}",
    ]
