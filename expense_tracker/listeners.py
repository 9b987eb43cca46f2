"""
Listener Registry

One-to-many fan-out of data changes to interested components.

DESIGN DECISION: Registration returns an explicit Subscription handle and
the registry holds strong references. Components must unregister on
teardown; nothing is cleaned up behind their back.

Delivery is synchronous, on whatever task the change originated from.
No ordering among listeners is promised.
"""

from dataclasses import dataclass, field
from itertools import count
from typing import Iterator, Protocol, Sequence, runtime_checkable

from expense_tracker.log import get_logger
from expense_tracker.models.records import (
    DatabaseChange,
    Expense,
    Income,
    ListenerType,
)


logger = get_logger(__name__)


@runtime_checkable
class DatabaseListener(Protocol):
    """Receives the user's full expense and income lists on every change."""

    listener_type: ListenerType

    def on_data_change(
        self,
        change: DatabaseChange,
        expenses: list[Expense],
        incomes: list[Income],
    ) -> None:
        ...


@runtime_checkable
class AuthenticationListener(Protocol):
    """Receives the outcome of sign-up and sign-in attempts."""

    def on_sign_up_success(self) -> None:
        ...

    def on_sign_in_success(self) -> None:
        ...

    def on_auth_error(self, error: Exception) -> None:
        ...


_subscription_ids = count(1)


@dataclass(frozen=True)
class Subscription:
    """Handle returned by `ListenerRegistry.register`."""

    listener: DatabaseListener
    scope: ListenerType
    id: int = field(default_factory=lambda: next(_subscription_ids))


def _scope_matches(subscribed: ListenerType, notified: ListenerType) -> bool:
    return subscribed == ListenerType.ALL or subscribed == notified


class ListenerRegistry:
    """
    Registry of data-change listeners tagged by interest scope.

    The last snapshot delivered is cached so late subscribers start from
    the current state instead of waiting for the next change.
    """

    def __init__(self):
        self._subscriptions: dict[int, Subscription] = {}
        self._expenses: list[Expense] = []
        self._incomes: list[Income] = []

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __iter__(self) -> Iterator[Subscription]:
        return iter(list(self._subscriptions.values()))

    @property
    def cached_expenses(self) -> list[Expense]:
        return list(self._expenses)

    @property
    def cached_incomes(self) -> list[Income]:
        return list(self._incomes)

    def register(self, listener: DatabaseListener) -> Subscription:
        """Add a listener and hand it the cached snapshot straight away."""
        subscription = Subscription(listener=listener, scope=listener.listener_type)
        self._subscriptions[subscription.id] = subscription

        if _scope_matches(subscription.scope, ListenerType.USERS):
            self._deliver(
                subscription,
                DatabaseChange.UPDATE,
                list(self._expenses),
                list(self._incomes),
            )
        return subscription

    def unregister(self, subscription: Subscription) -> None:
        """Remove a listener. Unknown or already removed handles are ignored."""
        self._subscriptions.pop(subscription.id, None)

    def notify(
        self,
        change: DatabaseChange,
        expenses: Sequence[Expense],
        incomes: Sequence[Income],
        scope: ListenerType = ListenerType.USERS,
    ) -> int:
        """
        Cache the snapshot and deliver it to every matching listener.

        Returns the number of listeners notified.
        """
        self._expenses = list(expenses)
        self._incomes = list(incomes)

        delivered = 0
        for subscription in self:
            if not _scope_matches(subscription.scope, scope):
                continue
            self._deliver(subscription, change, list(expenses), list(incomes))
            delivered += 1
        return delivered

    def clear_cache(self) -> None:
        self._expenses = []
        self._incomes = []

    def _deliver(
        self,
        subscription: Subscription,
        change: DatabaseChange,
        expenses: list[Expense],
        incomes: list[Income],
    ) -> None:
        try:
            subscription.listener.on_data_change(change, expenses, incomes)
        except Exception as e:
            logger.error(
                "listener_failed",
                subscription_id=subscription.id,
                listener=type(subscription.listener).__name__,
                error=str(e),
            )
