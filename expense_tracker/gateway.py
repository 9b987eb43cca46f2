"""
Data Gateway

Mediates every authentication and document call between the controllers
and the document store, and keeps listeners fed with the signed-in user's
expenses and incomes.

Flow:
1. Controller writes (add_expense + add_expense_to_user)
2. The user document changes in the store
3. The change subscription (or an explicit fetch_user_data) re-reads the
   user document and dereferences every expense/income reference
4. Listeners receive the full lists

DESIGN DECISION: Writes are fire-and-forget. The caller gets the record
back (with its pre-allocated ID) immediately; persistence failures are
logged and never surfaced. Only authentication errors reach the user.

Each fetch resolves its references through its own batch lookups, so two
overlapping fetches cannot interfere with each other's results.
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from typing import Awaitable, Optional, Union

from expense_tracker.listeners import AuthenticationListener, ListenerRegistry
from expense_tracker.log import get_logger
from expense_tracker.models.records import (
    AuthUser,
    DatabaseChange,
    Expense,
    Income,
    ListenerType,
    User,
    UserDocument,
)
from expense_tracker.services.database.interface import (
    EXPENSE_COLLECTION,
    EXPENSES_FIELD,
    INCOME_COLLECTION,
    INCOMES_FIELD,
    AuthenticationError,
    DatabaseError,
    DatabaseInterface,
)


logger = get_logger(__name__)


class DataGateway:
    """
    Authentication, writes and change fan-out for the signed-in user.

    Construct one per application and pass it to the controllers that need it.
    """

    def __init__(
        self,
        database: DatabaseInterface,
        listeners: Optional[ListenerRegistry] = None,
        auth_listener: Optional[AuthenticationListener] = None,
    ):
        self._database = database
        self.listeners = listeners or ListenerRegistry()
        self.auth_listener = auth_listener
        self._current_user: Optional[AuthUser] = None
        self._user: Optional[User] = None
        self._watch_task: Optional[asyncio.Task] = None
        self._pending: set[asyncio.Task] = set()

    @property
    def database(self) -> DatabaseInterface:
        return self._database

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._current_user

    @property
    def is_signed_in(self) -> bool:
        return self._current_user is not None

    @property
    def user(self) -> Optional[User]:
        """The signed-in user with records resolved by the latest fetch."""
        return self._user

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    async def create_account(self, email: str, password: str, watch: bool = True) -> bool:
        """
        Register a new account, provision its user document and sign in.

        Returns True if the account was created. The outcome is also
        reported to the authentication listener.
        """
        try:
            auth_user = await self._database.create_auth_user(email, password)
        except AuthenticationError as e:
            logger.warning("create_account_failed", email=email, error=str(e))
            if self.auth_listener:
                self.auth_listener.on_auth_error(e)
            return False

        logger.info("account_created", user_id=auth_user.id, email=auth_user.email)
        if self.auth_listener:
            self.auth_listener.on_sign_up_success()

        await self._write(
            self._database.set_user(auth_user.id, auth_user.email),
            "add_user",
            user_id=auth_user.id,
        )
        await self.sign_in(email, password, watch=watch)
        return True

    async def sign_in(self, email: str, password: str, watch: bool = True) -> bool:
        """
        Sign in and, when `watch` is set, start following the user document.

        Returns True on success. The outcome is also reported to the
        authentication listener.
        """
        try:
            auth_user = await self._database.authenticate(email, password)
        except AuthenticationError as e:
            logger.warning("sign_in_failed", email=email, error=str(e))
            if self.auth_listener:
                self.auth_listener.on_auth_error(e)
            return False

        await self.stop_watching()
        self._current_user = auth_user
        logger.info("signed_in", user_id=auth_user.id, email=auth_user.email)

        if self.auth_listener:
            self.auth_listener.on_sign_in_success()
        if watch:
            self.start_watching()
        return True

    async def sign_out(self) -> None:
        await self.stop_watching()
        self._current_user = None
        self._user = None
        self.listeners.clear_cache()

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    def add_user(self, user_id: str, email: str) -> None:
        self._schedule(self._database.set_user(user_id, email), "add_user", user_id=user_id)

    def remove_user(self, user_id: str) -> None:
        self._schedule(self._database.delete_user(user_id), "remove_user", user_id=user_id)

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def add_expense(
        self,
        name: Optional[str],
        category: Optional[str],
        amount: Union[Decimal, int, float, str],
        date: datetime,
    ) -> Expense:
        """
        Create an expense and start persisting it.

        The returned expense already carries its document ID; the write
        itself completes in the background.
        """
        expense = Expense(
            id=self._database.new_document_id(EXPENSE_COLLECTION),
            name=name,
            category=category,
            amount=Decimal(str(amount)),
            date=date,
        )
        self._schedule(self._database.put_expense(expense), "add_expense", expense_id=expense.id)
        return expense

    def add_income(self, amount: Union[Decimal, int, float, str], date: datetime) -> Income:
        """Create an income and start persisting it."""
        income = Income(
            id=self._database.new_document_id(INCOME_COLLECTION),
            amount=Decimal(str(amount)),
            date=date,
        )
        self._schedule(self._database.put_income(income), "add_income", income_id=income.id)
        return income

    def add_expense_to_user(self, expense: Expense) -> bool:
        """
        Reference the expense from the signed-in user's document.

        Returns True whenever a reference could be built (the expense has an
        ID). It does not wait for, or report on, the write itself.
        """
        return self._add_reference(EXPENSES_FIELD, expense.id)

    def add_income_to_user(self, income: Income) -> bool:
        """Reference the income from the signed-in user's document."""
        return self._add_reference(INCOMES_FIELD, income.id)

    def _add_reference(self, field: str, record_id: Optional[str]) -> bool:
        if not record_id:
            return False

        if self._current_user is None:
            logger.warning("reference_skipped_no_user", field=field, record_id=record_id)
            return True

        self._schedule(
            self._database.append_reference(self._current_user.id, field, record_id),
            "add_reference",
            field=field,
            record_id=record_id,
        )
        return True

    # -------------------------------------------------------------------------
    # Reads and fan-out
    # -------------------------------------------------------------------------

    async def fetch_user_data(self) -> tuple[list[Expense], list[Income]]:
        """
        Reload the signed-in user's records and notify listeners.

        Returns whatever resolved. Without a signed-in user or a user
        document nothing is notified.
        """
        if self._current_user is None:
            logger.warning("fetch_without_user")
            return [], []

        try:
            document = await self._database.get_user(self._current_user.id)
        except DatabaseError as e:
            logger.error("user_read_failed", user_id=self._current_user.id, error=str(e))
            return [], []

        if document is None:
            logger.warning("user_document_missing", user_id=self._current_user.id)
            return [], []

        return await self._resolve_and_notify(document)

    async def _resolve_and_notify(self, document: UserDocument) -> tuple[list[Expense], list[Income]]:
        if document.reference_count == 0:
            self._user = User(id=document.id, email=document.email)
            self.listeners.notify(DatabaseChange.UPDATE, [], [], scope=ListenerType.USERS)
            return [], []

        expense_results, income_results = await asyncio.gather(
            self._database.get_expenses(document.expense_ids),
            self._database.get_incomes(document.income_ids),
        )

        expenses = self._settled(expense_results, document.expense_ids, "expense")
        incomes = self._settled(income_results, document.income_ids, "income")
        self._user = User(id=document.id, email=document.email, expenses=expenses, incomes=incomes)

        self.listeners.notify(DatabaseChange.UPDATE, expenses, incomes, scope=ListenerType.USERS)
        return expenses, incomes

    def _settled(self, results: list, references: list[str], kind: str) -> list:
        """Keep the records that resolved; log the ones that didn't."""
        resolved = []
        for reference, result in zip(references, results):
            if isinstance(result, DatabaseError):
                logger.error(f"{kind}_read_failed", reference=reference, error=str(result))
            elif isinstance(result, BaseException):
                raise result
            elif result is None:
                logger.warning(f"{kind}_missing", reference=reference)
            else:
                resolved.append(result)
        return resolved

    # -------------------------------------------------------------------------
    # Change subscription
    # -------------------------------------------------------------------------

    def start_watching(self) -> None:
        """Follow the signed-in user's document until stopped."""
        if self._current_user is None:
            logger.warning("watch_without_user")
            return
        if self._watch_task and not self._watch_task.done():
            return
        self._watch_task = asyncio.get_running_loop().create_task(
            self._follow_user(self._current_user.id)
        )

    async def stop_watching(self) -> None:
        task, self._watch_task = self._watch_task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _follow_user(self, user_id: str) -> None:
        try:
            async for document in self._database.watch_user(user_id):
                await self._resolve_and_notify(document)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("user_watch_stopped", user_id=user_id, error=str(e))

    # -------------------------------------------------------------------------
    # Background writes
    # -------------------------------------------------------------------------

    def _schedule(self, write: Awaitable[None], operation: str, **context) -> None:
        task = asyncio.get_running_loop().create_task(self._write(write, operation, **context))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, write: Awaitable[None], operation: str, **context) -> None:
        try:
            await write
            logger.debug(f"{operation}_succeeded", **context)
        except DatabaseError as e:
            logger.error(f"{operation}_failed", error=str(e), **context)

    async def flush(self) -> None:
        """Wait for every background write started so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def close(self) -> None:
        await self.stop_watching()
        await self.flush()
