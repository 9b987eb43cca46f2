"""
In-Memory Document Store

A process-local backend with the same semantics as the Google Sheets one:
pre-allocated IDs, array-union references and a change stream per user
document. Used for offline runs (STORAGE_BACKEND=memory) and tests.
"""

import asyncio
from typing import AsyncIterator, Optional
from uuid import uuid4

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
    EXPENSES_FIELD,
    INCOMES_FIELD,
    DatabaseInterface,
    EmailAlreadyInUseError,
    NotFoundError,
    PersistenceWriteError,
    UserNotFoundError,
    WrongPasswordError,
)


logger = get_logger(__name__)


class InMemoryDatabase(DatabaseInterface):
    """Dictionary-backed implementation of the document store."""

    def __init__(self, min_password_length: int = DEFAULT_MIN_PASSWORD_LENGTH):
        self._min_password_length = min_password_length
        # email -> (user id, password hash)
        self._accounts: dict[str, tuple[str, str]] = {}
        self._users: dict[str, UserDocument] = {}
        self._expenses: dict[str, Expense] = {}
        self._incomes: dict[str, Income] = {}
        self._watchers: dict[str, set[asyncio.Queue]] = {}

    async def create_auth_user(self, email: str, password: str) -> AuthUser:
        normalized = validate_new_credentials(email, password, self._min_password_length)
        if normalized in self._accounts:
            raise EmailAlreadyInUseError(
                "The email address is already in use by another account."
            )
        user_id = uuid4().hex
        self._accounts[normalized] = (user_id, hash_password(password))
        return AuthUser(id=user_id, email=normalized)

    async def authenticate(self, email: str, password: str) -> AuthUser:
        normalized = normalize_email(email)
        account = self._accounts.get(normalized)
        if account is None:
            raise UserNotFoundError(
                "There is no user record corresponding to this identifier."
            )
        user_id, password_hash = account
        if not verify_password(password, password_hash):
            raise WrongPasswordError("The password is invalid.")
        return AuthUser(id=user_id, email=normalized)

    async def set_user(self, user_id: str, email: str) -> None:
        self._users[user_id] = UserDocument(id=user_id, email=normalize_email(email))
        self._publish(user_id)

    async def delete_user(self, user_id: str) -> None:
        self._users.pop(user_id, None)

    async def get_user(self, user_id: str) -> Optional[UserDocument]:
        document = self._users.get(user_id)
        return document.model_copy(deep=True) if document else None

    async def append_reference(self, user_id: str, field: str, record_id: str) -> None:
        document = self._users.get(user_id)
        if document is None:
            raise NotFoundError(f"User not found: {user_id}")

        if field == EXPENSES_FIELD:
            references = document.expense_ids
        elif field == INCOMES_FIELD:
            references = document.income_ids
        else:
            raise PersistenceWriteError(f"Unknown reference field: {field}")

        if record_id in references:
            return
        references.append(record_id)
        self._publish(user_id)

    async def watch_user(self, user_id: str) -> AsyncIterator[UserDocument]:
        queue: asyncio.Queue = asyncio.Queue()
        self._watchers.setdefault(user_id, set()).add(queue)
        try:
            current = await self.get_user(user_id)
            if current is not None:
                yield current
            while True:
                yield await queue.get()
        finally:
            self._watchers.get(user_id, set()).discard(queue)

    def new_document_id(self, collection: str) -> str:
        return uuid4().hex

    async def put_expense(self, expense: Expense) -> None:
        if not expense.id:
            raise PersistenceWriteError("Expense has no document ID")
        self._expenses[expense.id] = expense.model_copy(deep=True)

    async def put_income(self, income: Income) -> None:
        if not income.id:
            raise PersistenceWriteError("Income has no document ID")
        self._incomes[income.id] = income.model_copy(deep=True)

    async def get_expense(self, expense_id: str) -> Optional[Expense]:
        expense = self._expenses.get(expense_id)
        return expense.model_copy(deep=True) if expense else None

    async def get_income(self, income_id: str) -> Optional[Income]:
        income = self._incomes.get(income_id)
        return income.model_copy(deep=True) if income else None

    def _publish(self, user_id: str) -> None:
        """Push the latest user document to every open watch."""
        document = self._users.get(user_id)
        if document is None:
            return
        for queue in self._watchers.get(user_id, set()):
            queue.put_nowait(document.model_copy(deep=True))
        logger.debug(
            "user_document_published",
            user_id=user_id,
            watchers=len(self._watchers.get(user_id, set())),
        )
