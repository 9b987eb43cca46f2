"""
Google Sheets Document Store

DESIGN DECISION: Google Sheets is used as the remote backend because:
1. Users can look at their own data directly in Sheets
2. No database server to run
3. Built-in backup (Google's infrastructure)

Each collection is a worksheet with one document per row. Reference arrays
on a user document are stored as JSON lists of document IDs. Credentials
live in their own worksheet so user documents never carry password hashes.

TRADEOFFS:
- No push notifications: changes to a user document are detected by polling
- No transactions: array-union is read-modify-write on a single cell
- Limited query capabilities (we scan rows in Python)
"""

import asyncio
import json
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import AsyncIterator, Callable, Optional, Sequence, Union
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_tracker.config import GoogleSheetsSettings, get_settings
from expense_tracker.log import get_logger
from expense_tracker.models.records import AuthUser, Expense, Income, UserDocument
from expense_tracker.services.database.credentials import (
    DEFAULT_MIN_PASSWORD_LENGTH,
    hash_password,
    normalize_email,
    validate_new_credentials,
    verify_password,
)
from expense_tracker.services.database.interface import (
    EXPENSE_COLLECTION,
    EXPENSES_FIELD,
    INCOME_COLLECTION,
    INCOMES_FIELD,
    USERS_COLLECTION,
    DatabaseConnectionError,
    DatabaseError,
    DatabaseInterface,
    EmailAlreadyInUseError,
    NotFoundError,
    PersistenceReadError,
    PersistenceWriteError,
    UserNotFoundError,
    WrongPasswordError,
)


logger = get_logger(__name__)

ACCOUNTS_SHEET = "accounts"

ACCOUNT_COLUMNS = ["id", "email", "password_hash", "created_at"]
USER_COLUMNS = ["id", "email", "expenses_json", "incomes_json"]
EXPENSE_COLUMNS = ["id", "name", "category", "amount", "date"]
INCOME_COLUMNS = ["id", "amount", "date"]

SHEET_COLUMNS = {
    ACCOUNTS_SHEET: ACCOUNT_COLUMNS,
    USERS_COLLECTION: USER_COLUMNS,
    EXPENSE_COLLECTION: EXPENSE_COLUMNS,
    INCOME_COLLECTION: INCOME_COLUMNS,
}

# 1-based spreadsheet columns of the reference arrays
REFERENCE_COLUMNS = {
    EXPENSES_FIELD: USER_COLUMNS.index("expenses_json") + 1,
    INCOMES_FIELD: USER_COLUMNS.index("incomes_json") + 1,
}


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and hands out worksheets by collection name,
    creating missing ones with their header row.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets
        self._sheets: dict[str, gspread.Worksheet] = {}

    @property
    def poll_interval_seconds(self) -> float:
        return self._settings.poll_interval_seconds

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise DatabaseConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise DatabaseConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise DatabaseConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _sheet_title(self, collection: str) -> str:
        return {
            ACCOUNTS_SHEET: self._settings.accounts_sheet_name,
            USERS_COLLECTION: self._settings.users_sheet_name,
            EXPENSE_COLLECTION: self._settings.expense_sheet_name,
            INCOME_COLLECTION: self._settings.income_sheet_name,
        }[collection]

    def get_sheet(self, collection: str) -> gspread.Worksheet:
        """Get or create the worksheet backing a collection."""
        if collection in self._sheets:
            return self._sheets[collection]

        spreadsheet = self.get_spreadsheet()
        title = self._sheet_title(collection)
        columns = SHEET_COLUMNS[collection]
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)

        self._sheets[collection] = sheet
        return sheet


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def _find_row(all_rows: list[list], document_id: str) -> tuple[Optional[int], Optional[list]]:
    """Locate a document by ID. Returns the 1-based row index and the row."""
    for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is the header
        if row and row[0] == document_id:
            return idx, row
    return None, None


class GoogleSheetsDatabase(DatabaseInterface):
    """
    Google Sheets implementation of the document store.

    Rows are converted to and from the pydantic record models; a row that
    fails to decode surfaces as PersistenceReadError.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        min_password_length: int = DEFAULT_MIN_PASSWORD_LENGTH,
        poll_interval_seconds: Optional[float] = None,
    ):
        self._client = client or GoogleSheetsClient()
        self._min_password_length = min_password_length
        self._poll_interval = (
            poll_interval_seconds
            if poll_interval_seconds is not None
            else self._client.poll_interval_seconds
        )

    # -------------------------------------------------------------------------
    # Row conversion
    # -------------------------------------------------------------------------

    def _user_to_row(self, user: UserDocument) -> list:
        return [
            user.id,
            user.email,
            json.dumps(user.expense_ids),
            json.dumps(user.income_ids),
        ]

    def _row_to_user(self, row: list) -> UserDocument:
        try:
            return UserDocument(
                id=_safe_get(row, 0),
                email=_safe_get(row, 1),
                expense_ids=json.loads(_safe_get(row, 2, "[]")),
                income_ids=json.loads(_safe_get(row, 3, "[]")),
            )
        except (ValueError, ValidationError) as e:
            raise PersistenceReadError(f"Malformed user row {_safe_get(row, 0)}: {e}")

    def _expense_to_row(self, expense: Expense) -> list:
        return [
            expense.id,
            expense.name or "",
            expense.category or "",
            str(expense.amount),
            expense.date.isoformat(),
        ]

    def _row_to_expense(self, row: list) -> Expense:
        try:
            return Expense(
                id=_safe_get(row, 0),
                name=_safe_get(row, 1) or None,
                category=_safe_get(row, 2) or None,
                amount=Decimal(_safe_get(row, 3)),
                date=datetime.fromisoformat(_safe_get(row, 4)),
            )
        except (InvalidOperation, ValueError, ValidationError) as e:
            raise PersistenceReadError(f"Malformed expense row {_safe_get(row, 0)}: {e}")

    def _income_to_row(self, income: Income) -> list:
        return [
            income.id,
            str(income.amount),
            income.date.isoformat(),
        ]

    def _row_to_income(self, row: list) -> Income:
        try:
            return Income(
                id=_safe_get(row, 0),
                amount=Decimal(_safe_get(row, 1)),
                date=datetime.fromisoformat(_safe_get(row, 2)),
            )
        except (InvalidOperation, ValueError, ValidationError) as e:
            raise PersistenceReadError(f"Malformed income row {_safe_get(row, 0)}: {e}")

    def _read_rows(self, collection: str) -> list[list]:
        try:
            return self._client.get_sheet(collection).get_all_values()
        except DatabaseError:
            raise
        except Exception as e:
            raise PersistenceReadError(f"Failed to read {collection}: {e}")

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    async def create_auth_user(self, email: str, password: str) -> AuthUser:
        normalized = validate_new_credentials(email, password, self._min_password_length)

        for row in self._read_rows(ACCOUNTS_SHEET)[1:]:
            if row and _safe_get(row, 1) == normalized:
                raise EmailAlreadyInUseError(
                    "The email address is already in use by another account."
                )

        user_id = uuid4().hex
        row = [user_id, normalized, hash_password(password), datetime.now(timezone.utc).isoformat()]
        await self._append(ACCOUNTS_SHEET, row)
        return AuthUser(id=user_id, email=normalized)

    async def authenticate(self, email: str, password: str) -> AuthUser:
        normalized = normalize_email(email)
        for row in self._read_rows(ACCOUNTS_SHEET)[1:]:
            if row and _safe_get(row, 1) == normalized:
                if not verify_password(password, _safe_get(row, 2)):
                    raise WrongPasswordError("The password is invalid.")
                return AuthUser(id=_safe_get(row, 0), email=normalized)

        raise UserNotFoundError(
            "There is no user record corresponding to this identifier."
        )

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def set_user(self, user_id: str, email: str) -> None:
        document = UserDocument(id=user_id, email=normalize_email(email))
        try:
            sheet = self._client.get_sheet(USERS_COLLECTION)
            idx, _ = _find_row(sheet.get_all_values(), user_id)
            new_row = self._user_to_row(document)
            if idx is None:
                sheet.append_row(new_row, value_input_option="RAW")
            else:
                for col_idx, value in enumerate(new_row, start=1):
                    sheet.update_cell(idx, col_idx, value)
        except DatabaseError:
            raise
        except Exception as e:
            raise PersistenceWriteError(f"Failed to save user: {e}")

    async def delete_user(self, user_id: str) -> None:
        try:
            sheet = self._client.get_sheet(USERS_COLLECTION)
            idx, _ = _find_row(sheet.get_all_values(), user_id)
            if idx is not None:
                sheet.delete_rows(idx)
        except DatabaseError:
            raise
        except Exception as e:
            raise PersistenceWriteError(f"Failed to delete user: {e}")

    async def get_user(self, user_id: str) -> Optional[UserDocument]:
        _, row = _find_row(self._read_rows(USERS_COLLECTION), user_id)
        return self._row_to_user(row) if row else None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(NotFoundError),
        reraise=True,
    )
    async def append_reference(self, user_id: str, field: str, record_id: str) -> None:
        if field not in REFERENCE_COLUMNS:
            raise PersistenceWriteError(f"Unknown reference field: {field}")

        try:
            sheet = self._client.get_sheet(USERS_COLLECTION)
            idx, row = _find_row(sheet.get_all_values(), user_id)
        except DatabaseError:
            raise
        except Exception as e:
            raise PersistenceWriteError(f"Failed to load user for update: {e}")

        if idx is None:
            raise NotFoundError(f"User not found: {user_id}")

        document = self._row_to_user(row)
        references = document.expense_ids if field == EXPENSES_FIELD else document.income_ids
        if record_id in references:
            return
        references.append(record_id)

        try:
            sheet.update_cell(idx, REFERENCE_COLUMNS[field], json.dumps(references))
        except Exception as e:
            raise PersistenceWriteError(f"Failed to update user {field}: {e}")

    async def watch_user(self, user_id: str) -> AsyncIterator[UserDocument]:
        """Poll the user row and yield whenever it differs from the last one seen."""
        last_seen: Optional[UserDocument] = None
        while True:
            try:
                document = await self.get_user(user_id)
            except DatabaseError as e:
                logger.warning("user_poll_failed", user_id=user_id, error=str(e))
                document = None

            if document is not None and document != last_seen:
                last_seen = document
                yield document

            await asyncio.sleep(self._poll_interval)

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def new_document_id(self, collection: str) -> str:
        return uuid4().hex

    async def put_expense(self, expense: Expense) -> None:
        if not expense.id:
            raise PersistenceWriteError("Expense has no document ID")
        await self._append(EXPENSE_COLLECTION, self._expense_to_row(expense))

    async def put_income(self, income: Income) -> None:
        if not income.id:
            raise PersistenceWriteError("Income has no document ID")
        await self._append(INCOME_COLLECTION, self._income_to_row(income))

    async def get_expense(self, expense_id: str) -> Optional[Expense]:
        _, row = _find_row(self._read_rows(EXPENSE_COLLECTION), expense_id)
        return self._row_to_expense(row) if row else None

    async def get_income(self, income_id: str) -> Optional[Income]:
        _, row = _find_row(self._read_rows(INCOME_COLLECTION), income_id)
        return self._row_to_income(row) if row else None

    async def get_expenses(
        self,
        expense_ids: Sequence[str],
    ) -> list[Union[Expense, None, Exception]]:
        """Resolve many expenses with a single read of the expense sheet."""
        return self._resolve_many(EXPENSE_COLLECTION, expense_ids, self._row_to_expense)

    async def get_incomes(
        self,
        income_ids: Sequence[str],
    ) -> list[Union[Income, None, Exception]]:
        """Resolve many incomes with a single read of the income sheet."""
        return self._resolve_many(INCOME_COLLECTION, income_ids, self._row_to_income)

    def _resolve_many(
        self,
        collection: str,
        document_ids: Sequence[str],
        convert: Callable[[list], Union[Expense, Income]],
    ) -> list:
        if not document_ids:
            return []

        try:
            all_rows = self._read_rows(collection)
        except DatabaseError as e:
            return [e] * len(document_ids)

        rows_by_id: dict[str, list] = {}
        for row in all_rows[1:]:  # Row 1 is the header
            if row and row[0]:
                rows_by_id.setdefault(row[0], row)

        results = []
        for document_id in document_ids:
            row = rows_by_id.get(document_id)
            if row is None:
                results.append(None)
                continue
            try:
                results.append(convert(row))
            except PersistenceReadError as e:
                results.append(e)
        return results

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _append(self, collection: str, row: list) -> None:
        try:
            sheet = self._client.get_sheet(collection)
            sheet.append_row(row, value_input_option="RAW")
        except DatabaseError:
            raise
        except Exception as e:
            raise PersistenceWriteError(f"Failed to write to {collection}: {e}")
