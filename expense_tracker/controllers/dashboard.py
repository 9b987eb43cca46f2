"""Dashboard: expenses of the selected timeline, totalled per category."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from expense_tracker.aggregation import category_totals, filter_by_period, sum_amounts
from expense_tracker.controllers.base import ListeningController
from expense_tracker.gateway import DataGateway
from expense_tracker.models.records import (
    CategoryTotal,
    DatabaseChange,
    Expense,
    Income,
    Period,
)


class DashboardController(ListeningController):
    """
    Drives the pie chart and the category table.

    The timeline defaults to today; switching it re-filters the expenses
    already held, without another fetch.
    """

    def __init__(self, gateway: DataGateway, timeline: Period = Period.DAY):
        super().__init__(gateway)
        self.timeline = timeline
        self.filtered_expenses: list[Expense] = []
        self._now: Optional[datetime] = None

    def on_data_change(
        self,
        change: DatabaseChange,
        expenses: list[Expense],
        incomes: list[Income],
    ) -> None:
        super().on_data_change(change, expenses, incomes)
        self._refilter()

    def select_timeline(self, timeline: Period, now: Optional[datetime] = None) -> None:
        self.timeline = timeline
        self._now = now
        self._refilter()

    def _refilter(self) -> None:
        self.filtered_expenses = filter_by_period(self.expenses, self.timeline, self._now)

    @property
    def chart_data(self) -> list[CategoryTotal]:
        return category_totals(self.filtered_expenses)

    @property
    def table_rows(self) -> list[tuple[str, str]]:
        """(category, formatted total) rows, alphabetical."""
        return [
            (total.category, f"${total.amount:.2f}")
            for total in self.chart_data
        ]

    @property
    def total_spent(self) -> Decimal:
        return sum_amounts(self.filtered_expenses)
