"""Shared plumbing for controllers that listen to user data changes."""

from typing import Optional

from expense_tracker.gateway import DataGateway
from expense_tracker.listeners import Subscription
from expense_tracker.models.records import (
    Alert,
    DatabaseChange,
    Expense,
    Income,
    ListenerType,
)


class ListeningController:
    """
    Base for screens that show the signed-in user's data.

    `attach()` when the screen appears (reload, then subscribe) and
    `detach()` when it goes away. Subclasses override `on_data_change`.
    """

    listener_type: ListenerType = ListenerType.USERS

    def __init__(self, gateway: DataGateway):
        self._gateway = gateway
        self._subscription: Optional[Subscription] = None
        self.expenses: list[Expense] = []
        self.incomes: list[Income] = []

    @property
    def is_attached(self) -> bool:
        return self._subscription is not None

    async def attach(self) -> None:
        await self._gateway.fetch_user_data()
        if self._subscription is None:
            self._subscription = self._gateway.listeners.register(self)

    def detach(self) -> None:
        if self._subscription is not None:
            self._gateway.listeners.unregister(self._subscription)
            self._subscription = None

    def on_data_change(
        self,
        change: DatabaseChange,
        expenses: list[Expense],
        incomes: list[Income],
    ) -> None:
        self.expenses = expenses
        self.incomes = incomes


def error_alert(message: str) -> Alert:
    return Alert(title="Error", message=message)
