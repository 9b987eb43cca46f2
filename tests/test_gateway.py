"""Tests for the data gateway: auth flow, writes and listener fan-out."""

import asyncio
from datetime import datetime
from decimal import Decimal

from expense_tracker.gateway import DataGateway
from expense_tracker.models import ListenerType
from expense_tracker.services.database import (
    EXPENSES_FIELD,
    InMemoryDatabase,
    PersistenceReadError,
    PersistenceWriteError,
)

from conftest import RecordingListener, amounts, wait_until


WHEN = datetime(2024, 6, 15, 12, 0)


class RecordingAuthListener:
    def __init__(self):
        self.events: list = []

    def on_sign_up_success(self):
        self.events.append("sign_up")

    def on_sign_in_success(self):
        self.events.append("sign_in")

    def on_auth_error(self, error):
        self.events.append(error)


class FlakyDatabase(InMemoryDatabase):
    """Fails reads for chosen expense IDs and all writes when asked."""

    def __init__(self, broken_expense_ids=(), fail_writes=False):
        super().__init__()
        self.broken_expense_ids = set(broken_expense_ids)
        self.fail_writes = fail_writes

    async def get_expense(self, expense_id):
        if expense_id in self.broken_expense_ids:
            raise PersistenceReadError(f"cannot read {expense_id}")
        return await super().get_expense(expense_id)

    async def put_expense(self, expense):
        if self.fail_writes:
            raise PersistenceWriteError("sheet unavailable")
        await super().put_expense(expense)


async def signed_in(gateway, email="ada@example.com", watch=False):
    await gateway.create_account(email, "secret123", watch=watch)
    return gateway.current_user


class TestAuthentication:
    """Tests for account creation and sign-in."""

    def test_create_account_signs_in_and_provisions_document(self, gateway, database):
        listener = RecordingAuthListener()
        gateway.auth_listener = listener

        async def scenario():
            created = await gateway.create_account("ada@example.com", "secret123", watch=False)
            document = await database.get_user(gateway.current_user.id)
            return created, document

        created, document = asyncio.run(scenario())
        assert created
        assert gateway.is_signed_in
        assert document.email == "ada@example.com"
        assert listener.events == ["sign_up", "sign_in"]

    def test_create_account_error_reaches_listener(self, gateway):
        listener = RecordingAuthListener()
        gateway.auth_listener = listener

        created = asyncio.run(gateway.create_account("not-an-email", "secret123", watch=False))

        assert not created
        assert not gateway.is_signed_in
        assert "badly formatted" in str(listener.events[0])

    def test_sign_in_wrong_password(self, gateway):
        listener = RecordingAuthListener()

        async def scenario():
            await signed_in(gateway)
            await gateway.sign_out()
            gateway.auth_listener = listener
            return await gateway.sign_in("ada@example.com", "wrong-one", watch=False)

        assert not asyncio.run(scenario())
        assert "password is invalid" in str(listener.events[0])

    def test_overlong_password_is_an_auth_error(self, gateway):
        """bcrypt's 72 byte limit surfaces as an ordinary sign-up failure."""
        listener = RecordingAuthListener()
        gateway.auth_listener = listener

        created = asyncio.run(gateway.create_account("ada@example.com", "p" * 80, watch=False))

        assert not created
        assert "at most 72 bytes" in str(listener.events[0])

    def test_sign_in_with_overlong_password_is_wrong_password(self, gateway):
        listener = RecordingAuthListener()

        async def scenario():
            await signed_in(gateway)
            await gateway.sign_out()
            gateway.auth_listener = listener
            return await gateway.sign_in("ada@example.com", "p" * 80, watch=False)

        assert not asyncio.run(scenario())
        assert "password is invalid" in str(listener.events[0])

    def test_sign_out_clears_user_and_cache(self, gateway):
        async def scenario():
            await signed_in(gateway)
            expense = gateway.add_expense("Lunch", "Food", 10, WHEN)
            gateway.add_expense_to_user(expense)
            await gateway.flush()
            await gateway.fetch_user_data()
            await gateway.sign_out()

        asyncio.run(scenario())
        assert not gateway.is_signed_in
        assert gateway.listeners.cached_expenses == []
        assert gateway.user is None


class TestWrites:
    """Tests for record creation and references."""

    def test_add_expense_returns_record_with_id(self, gateway, database):
        async def scenario():
            expense = gateway.add_expense("Lunch", "Food", "12.50", WHEN)
            await gateway.flush()
            return expense, await database.get_expense(expense.id)

        expense, stored = asyncio.run(scenario())
        assert expense.id
        assert expense.amount == Decimal("12.50")
        assert stored == expense

    def test_add_expense_with_long_category(self, gateway, database):
        async def scenario():
            expense = gateway.add_expense("n", "C" * 101, Decimal("1"), WHEN)
            await gateway.flush()
            return await database.get_expense(expense.id)

        assert asyncio.run(scenario()).category == "C" * 101

    def test_add_income(self, gateway, database):
        async def scenario():
            income = gateway.add_income(100, WHEN)
            await gateway.flush()
            return income, await database.get_income(income.id)

        income, stored = asyncio.run(scenario())
        assert stored.amount == Decimal("100")

    def test_reference_is_added_to_signed_in_user(self, gateway, database):
        async def scenario():
            user = await signed_in(gateway)
            expense = gateway.add_expense("Lunch", "Food", 10, WHEN)
            income = gateway.add_income(50, WHEN)
            assert gateway.add_expense_to_user(expense)
            assert gateway.add_income_to_user(income)
            await gateway.flush()
            return await database.get_user(user.id), expense, income

        document, expense, income = asyncio.run(scenario())
        assert document.expense_ids == [expense.id]
        assert document.income_ids == [income.id]

    def test_reference_without_id_is_rejected(self, gateway):
        async def scenario():
            await signed_in(gateway)
            expense = gateway.add_expense("Lunch", "Food", 10, WHEN)
            return gateway.add_expense_to_user(expense.model_copy(update={"id": None}))

        assert asyncio.run(scenario()) is False

    def test_reference_without_user_still_reports_success(self, gateway):
        async def scenario():
            expense = gateway.add_expense("Lunch", "Food", 10, WHEN)
            return gateway.add_expense_to_user(expense)

        assert asyncio.run(scenario()) is True

    def test_failed_write_is_not_raised(self):
        gateway = DataGateway(FlakyDatabase(fail_writes=True))

        async def scenario():
            expense = gateway.add_expense("Lunch", "Food", 10, WHEN)
            await gateway.flush()
            return expense

        assert asyncio.run(scenario()).id

    def test_add_and_remove_user(self, gateway, database):
        async def scenario():
            gateway.add_user("u1", "ada@example.com")
            await gateway.flush()
            added = await database.get_user("u1")
            gateway.remove_user("u1")
            await gateway.flush()
            return added, await database.get_user("u1")

        added, removed = asyncio.run(scenario())
        assert added.email == "ada@example.com"
        assert removed is None


class TestFetch:
    """Tests for fetching and dereferencing the user's records."""

    def test_zero_references_notifies_exactly_once(self, gateway):
        listener = RecordingListener(ListenerType.USERS)

        async def scenario():
            await signed_in(gateway)
            gateway.listeners.register(listener)
            listener.calls.clear()
            return await gateway.fetch_user_data()

        expenses, incomes = asyncio.run(scenario())
        assert (expenses, incomes) == ([], [])
        assert len(listener.calls) == 1
        assert listener.last_expenses == []

    def test_fetch_resolves_every_reference(self, gateway):
        listener = RecordingListener(ListenerType.USERS)
        gateway.listeners.register(listener)

        async def scenario():
            await signed_in(gateway)
            for amount in (10, 5):
                gateway.add_expense_to_user(gateway.add_expense("x", "Food", amount, WHEN))
            gateway.add_income_to_user(gateway.add_income(100, WHEN))
            await gateway.flush()
            return await gateway.fetch_user_data()

        expenses, incomes = asyncio.run(scenario())
        assert amounts(expenses) == [Decimal("5"), Decimal("10")]
        assert amounts(incomes) == [Decimal("100")]
        assert amounts(listener.last_expenses) == [Decimal("5"), Decimal("10")]
        assert gateway.user.email == "ada@example.com"
        assert amounts(gateway.user.incomes) == [Decimal("100")]

    def test_unreadable_records_are_left_out(self):
        database = FlakyDatabase()
        gateway = DataGateway(database)

        async def scenario():
            user = await signed_in(gateway)
            good = gateway.add_expense("ok", "Food", 10, WHEN)
            bad = gateway.add_expense("bad", "Food", 99, WHEN)
            gateway.add_expense_to_user(good)
            gateway.add_expense_to_user(bad)
            await database.append_reference(user.id, EXPENSES_FIELD, "dangling")
            await gateway.flush()
            database.broken_expense_ids.add(bad.id)
            return await gateway.fetch_user_data()

        expenses, _ = asyncio.run(scenario())
        assert [e.name for e in expenses] == ["ok"]

    def test_fetch_without_user_notifies_nobody(self, gateway):
        listener = RecordingListener(ListenerType.USERS)
        gateway.listeners.register(listener)

        assert asyncio.run(gateway.fetch_user_data()) == ([], [])
        assert len(listener.calls) == 1


class TestWatching:
    """Tests for the change subscription."""

    def test_listener_follows_new_expenses(self, gateway):
        listener = RecordingListener(ListenerType.USERS)
        gateway.listeners.register(listener)

        async def scenario():
            await signed_in(gateway, watch=True)
            expense = gateway.add_expense("Lunch", "Food", 10, WHEN)
            gateway.add_expense_to_user(expense)
            await gateway.flush()
            await wait_until(lambda: len(listener.last_expenses) == 1)
            await gateway.close()

        asyncio.run(scenario())
        assert listener.last_expenses[0].name == "Lunch"

    def test_stop_watching_is_idempotent(self, gateway):
        async def scenario():
            await signed_in(gateway, watch=True)
            await gateway.stop_watching()
            await gateway.stop_watching()

        asyncio.run(scenario())
