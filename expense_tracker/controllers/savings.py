"""
Savings screen.

Savings are always computed in the base currency (AUD unless configured
otherwise) and converted for display with the latest fetched rate.
"""

from decimal import Decimal
from typing import Optional, Sequence

from expense_tracker.aggregation import calculate_savings, convert_savings
from expense_tracker.controllers.base import ListeningController
from expense_tracker.gateway import DataGateway
from expense_tracker.log import get_logger
from expense_tracker.models.records import (
    CURRENCIES,
    CURRENCY_NAMES,
    DatabaseChange,
    Expense,
    Income,
    Savings,
)
from expense_tracker.services.currency import ExchangeRateClient


logger = get_logger(__name__)


class SavingsController(ListeningController):
    """
    Drives the savings bar chart and the currency picker.

    When no rate is available for the selected currency the chart keeps
    showing whatever it showed before.
    """

    def __init__(
        self,
        gateway: DataGateway,
        rates: ExchangeRateClient,
        currencies: Optional[Sequence[str]] = None,
    ):
        super().__init__(gateway)
        self._rates = rates
        self.currencies = list(currencies or CURRENCIES)
        self.base_currency = rates.base_currency
        self.selected_currency = self.base_currency
        self.savings: list[Savings] = []
        self.chart_data: list[Savings] = []

    async def attach(self) -> None:
        await self._rates.fetch_rates(self.selected_currency)
        await super().attach()
        self.update_chart()

    def detach(self) -> None:
        super().detach()
        self.selected_currency = self.base_currency

    async def select_currency(self, currency: str) -> None:
        self.selected_currency = currency.strip().upper()
        await self._rates.fetch_rates(self.selected_currency)
        self.update_chart()

    def on_data_change(
        self,
        change: DatabaseChange,
        expenses: list[Expense],
        incomes: list[Income],
    ) -> None:
        super().on_data_change(change, expenses, incomes)
        self.savings = calculate_savings(expenses, incomes)
        self.update_chart()

    def conversion_rate(self) -> Optional[Decimal]:
        if self.selected_currency == self.base_currency:
            return Decimal("1")
        return self._rates.rate(self.base_currency, self.selected_currency)

    def update_chart(self) -> None:
        rate = self.conversion_rate()
        if rate is None:
            logger.warning(
                "missing_exchange_rate",
                base_currency=self.base_currency,
                currency=self.selected_currency,
            )
            return
        self.chart_data = convert_savings(self.savings, rate)

    @property
    def label(self) -> str:
        name = CURRENCY_NAMES.get(self.selected_currency, self.selected_currency)
        return f"Your savings in {name}"
