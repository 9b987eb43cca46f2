"""Tests for the Google Sheets backend against in-process fake worksheets."""

import asyncio
import json
import pytest
from datetime import datetime
from decimal import Decimal

from expense_tracker.gateway import DataGateway
from expense_tracker.models import Expense, Income
from expense_tracker.services.database import (
    EXPENSE_COLLECTION,
    EXPENSES_FIELD,
    INCOME_COLLECTION,
    INCOMES_FIELD,
    USERS_COLLECTION,
    EmailAlreadyInUseError,
    GoogleSheetsDatabase,
    NotFoundError,
    PersistenceReadError,
    UserNotFoundError,
    WrongPasswordError,
)
from expense_tracker.services.database.google_sheets import (
    ACCOUNTS_SHEET,
    SHEET_COLUMNS,
    _find_row,
)


class FakeWorksheet:
    """The slice of gspread.Worksheet the backend uses."""

    def __init__(self, columns):
        self.rows = [list(columns)]
        self.reads = 0

    def get_all_values(self):
        self.reads += 1
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append([str(value) for value in row])

    def update_cell(self, row, col, value):
        target = self.rows[row - 1]
        while len(target) < col:
            target.append("")
        target[col - 1] = str(value)

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    poll_interval_seconds = 0.01

    def __init__(self):
        self.sheets = {name: FakeWorksheet(columns) for name, columns in SHEET_COLUMNS.items()}

    def get_sheet(self, collection):
        return self.sheets[collection]


@pytest.fixture
def client():
    return FakeSheetsClient()


@pytest.fixture
def sheets_db(client):
    return GoogleSheetsDatabase(client, poll_interval_seconds=0.01)


class TestRowHelpers:
    def test_find_row_skips_header(self):
        rows = [["id", "email"], ["u1", "a@example.com"], ["u2", "b@example.com"]]
        assert _find_row(rows, "u2") == (3, ["u2", "b@example.com"])
        assert _find_row(rows, "id") == (None, None)


class TestAccounts:
    """Tests for the accounts worksheet."""

    def test_create_stores_hash_not_password(self, sheets_db, client):
        user = asyncio.run(sheets_db.create_auth_user("Ada@Example.com", "secret123"))

        row = client.sheets[ACCOUNTS_SHEET].rows[1]
        assert row[0] == user.id
        assert row[1] == "ada@example.com"
        assert row[2] != "secret123"

    def test_authenticate(self, sheets_db):
        async def scenario():
            created = await sheets_db.create_auth_user("ada@example.com", "secret123")
            signed_in = await sheets_db.authenticate(" ADA@example.com", "secret123")
            return created, signed_in

        created, signed_in = asyncio.run(scenario())
        assert signed_in.id == created.id

    def test_duplicate_email(self, sheets_db):
        async def scenario():
            await sheets_db.create_auth_user("ada@example.com", "secret123")
            await sheets_db.create_auth_user("ada@example.com", "secret456")

        with pytest.raises(EmailAlreadyInUseError):
            asyncio.run(scenario())

    def test_wrong_password(self, sheets_db):
        async def scenario():
            await sheets_db.create_auth_user("ada@example.com", "secret123")
            await sheets_db.authenticate("ada@example.com", "nope-nope")

        with pytest.raises(WrongPasswordError):
            asyncio.run(scenario())

    def test_unknown_user(self, sheets_db):
        with pytest.raises(UserNotFoundError):
            asyncio.run(sheets_db.authenticate("ghost@example.com", "secret123"))


class TestUserDocuments:
    """Tests for the users worksheet."""

    def test_set_user_appends_then_updates(self, sheets_db, client):
        async def scenario():
            await sheets_db.set_user("u1", "ada@example.com")
            await sheets_db.set_user("u1", "ada.new@example.com")

        asyncio.run(scenario())
        rows = client.sheets[USERS_COLLECTION].rows
        assert len(rows) == 2
        assert rows[1][:2] == ["u1", "ada.new@example.com"]

    def test_append_reference_is_a_union(self, sheets_db, client):
        async def scenario():
            await sheets_db.set_user("u1", "ada@example.com")
            await sheets_db.append_reference("u1", EXPENSES_FIELD, "e1")
            await sheets_db.append_reference("u1", EXPENSES_FIELD, "e1")
            await sheets_db.append_reference("u1", INCOMES_FIELD, "i1")
            return await sheets_db.get_user("u1")

        document = asyncio.run(scenario())
        assert document.expense_ids == ["e1"]
        assert document.income_ids == ["i1"]
        assert json.loads(client.sheets[USERS_COLLECTION].rows[1][2]) == ["e1"]

    def test_delete_user(self, sheets_db):
        async def scenario():
            await sheets_db.set_user("u1", "ada@example.com")
            await sheets_db.delete_user("u1")
            return await sheets_db.get_user("u1")

        assert asyncio.run(scenario()) is None

    def test_malformed_reference_cell(self, sheets_db, client):
        client.sheets[USERS_COLLECTION].rows.append(["u1", "ada@example.com", "not json", "[]"])
        with pytest.raises(PersistenceReadError):
            asyncio.run(sheets_db.get_user("u1"))

    def test_watch_yields_only_on_change(self, sheets_db):
        async def scenario():
            await sheets_db.set_user("u1", "ada@example.com")
            stream = sheets_db.watch_user("u1")
            first = await stream.__anext__()
            await sheets_db.append_reference("u1", EXPENSES_FIELD, "e1")
            second = await asyncio.wait_for(stream.__anext__(), timeout=1)
            await stream.aclose()
            return first, second

        first, second = asyncio.run(scenario())
        assert first.expense_ids == []
        assert second.expense_ids == ["e1"]

    def test_append_reference_to_missing_user_is_not_retried(self, sheets_db, client):
        with pytest.raises(NotFoundError):
            asyncio.run(sheets_db.append_reference("ghost", EXPENSES_FIELD, "e1"))
        assert client.sheets[USERS_COLLECTION].reads == 1


class TestRecords:
    """Tests for the expense and income worksheets."""

    def test_expense_roundtrip(self, sheets_db, client):
        expense = Expense(
            id=sheets_db.new_document_id(EXPENSE_COLLECTION),
            name="Lunch",
            category="Food",
            amount=Decimal("12.50"),
            date=datetime(2024, 6, 15, 12, 30),
        )

        async def scenario():
            await sheets_db.put_expense(expense)
            return await sheets_db.get_expense(expense.id)

        assert asyncio.run(scenario()) == expense
        assert client.sheets[EXPENSE_COLLECTION].rows[1][3] == "12.50"

    def test_expense_without_name_or_category(self, sheets_db):
        expense = Expense(id="e1", amount=Decimal("3"), date=datetime(2024, 6, 15))

        async def scenario():
            await sheets_db.put_expense(expense)
            return await sheets_db.get_expense("e1")

        stored = asyncio.run(scenario())
        assert stored.name is None
        assert stored.category is None

    def test_income_roundtrip(self, sheets_db):
        income = Income(id="i1", amount=Decimal("1000"), date=datetime(2024, 6, 1, 9, 0))

        async def scenario():
            await sheets_db.put_income(income)
            return await sheets_db.get_income("i1")

        assert asyncio.run(scenario()) == income

    def test_missing_record_is_none(self, sheets_db):
        assert asyncio.run(sheets_db.get_income("nope")) is None

    def test_malformed_amount(self, sheets_db, client):
        client.sheets[INCOME_COLLECTION].rows.append(["i1", "lots", "2024-06-01T09:00:00"])
        with pytest.raises(PersistenceReadError):
            asyncio.run(sheets_db.get_income("i1"))


class TestBatchLookups:
    """Tests for resolving many references against one sheet read."""

    def test_fetch_reads_each_sheet_once(self, sheets_db, client):
        gateway = DataGateway(sheets_db)

        async def scenario():
            await gateway.create_account("ada@example.com", "secret123", watch=False)
            for amount in range(1, 21):
                gateway.add_expense_to_user(
                    gateway.add_expense(f"item {amount}", "Food", amount, datetime(2024, 6, amount))
                )
            gateway.add_income_to_user(gateway.add_income(500, datetime(2024, 6, 1)))
            await gateway.flush()
            for sheet in client.sheets.values():
                sheet.reads = 0
            return await gateway.fetch_user_data()

        expenses, incomes = asyncio.run(scenario())
        assert len(expenses) == 20
        assert len(incomes) == 1
        assert client.sheets[EXPENSE_COLLECTION].reads == 1
        assert client.sheets[INCOME_COLLECTION].reads == 1

    def test_results_follow_requested_order(self, sheets_db, client):
        rows = client.sheets[EXPENSE_COLLECTION].rows
        rows.append(["e1", "Lunch", "Food", "10", "2024-06-15T12:00:00"])
        rows.append(["e2", "Bad", "Food", "lots", "2024-06-15T12:00:00"])
        rows.append(["e3", "Bus", "Travel", "3", "2024-06-15T08:00:00"])

        results = asyncio.run(sheets_db.get_expenses(["e3", "missing", "e2", "e1"]))

        assert results[0].name == "Bus"
        assert results[1] is None
        assert isinstance(results[2], PersistenceReadError)
        assert results[3].amount == Decimal("10")
        assert client.sheets[EXPENSE_COLLECTION].reads == 1

    def test_no_ids_reads_nothing(self, sheets_db, client):
        assert asyncio.run(sheets_db.get_incomes([])) == []
        assert client.sheets[INCOME_COLLECTION].reads == 0
