"""
Abstract Document Store Interface

DESIGN DECISION: We define an abstract interface for the document store.
This allows us to:
1. Run against Google Sheets in production
2. Use in-memory storage for testing and offline use
3. Keep the gateway's flow decoupled from any one backend

Three collections exist: `users`, `expense` and `income`. A user document
holds its email and arrays of references (document IDs) into the other
two collections.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional, Sequence, Union

from expense_tracker.models.records import AuthUser, Expense, Income, UserDocument


USERS_COLLECTION = "users"
EXPENSE_COLLECTION = "expense"
INCOME_COLLECTION = "income"

# Reference array fields on a user document
EXPENSES_FIELD = "expenses"
INCOMES_FIELD = "incomes"


class DatabaseInterface(ABC):
    """
    Abstract interface for authentication and document operations.

    Any backend (Google Sheets, in-memory, etc.) must implement these methods.
    """

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_auth_user(self, email: str, password: str) -> AuthUser:
        """
        Register a new principal.

        Raises:
            InvalidEmailError: Email is malformed
            WeakPasswordError: Password is too short
            EmailAlreadyInUseError: Email already registered
        """
        pass

    @abstractmethod
    async def authenticate(self, email: str, password: str) -> AuthUser:
        """
        Verify credentials.

        Raises:
            UserNotFoundError: No principal with this email
            WrongPasswordError: Password does not match
        """
        pass

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    @abstractmethod
    async def set_user(self, user_id: str, email: str) -> None:
        """Create (or reset) the user document with empty reference arrays."""
        pass

    @abstractmethod
    async def delete_user(self, user_id: str) -> None:
        """Delete a user document. Missing documents are ignored."""
        pass

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[UserDocument]:
        """
        Retrieve a user document.

        Returns:
            The document if found, None otherwise
        """
        pass

    @abstractmethod
    async def append_reference(self, user_id: str, field: str, record_id: str) -> None:
        """
        Add a reference to one of the user's arrays.

        Array-union semantics: a reference already present is not added again.

        Raises:
            NotFoundError: User document doesn't exist
            PersistenceWriteError: The write failed
        """
        pass

    @abstractmethod
    def watch_user(self, user_id: str) -> AsyncIterator[UserDocument]:
        """
        Subscribe to a user document.

        Yields the current document first and then again after every change.
        The iterator runs until the consuming task is cancelled.
        """
        pass

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    @abstractmethod
    def new_document_id(self, collection: str) -> str:
        """Allocate an identifier for a document about to be created."""
        pass

    @abstractmethod
    async def put_expense(self, expense: Expense) -> None:
        """
        Persist an expense whose id is already allocated.

        Raises:
            PersistenceWriteError: The write failed
        """
        pass

    @abstractmethod
    async def put_income(self, income: Income) -> None:
        """
        Persist an income whose id is already allocated.

        Raises:
            PersistenceWriteError: The write failed
        """
        pass

    @abstractmethod
    async def get_expense(self, expense_id: str) -> Optional[Expense]:
        """
        Dereference an expense.

        Raises:
            PersistenceReadError: The document exists but cannot be decoded
        """
        pass

    @abstractmethod
    async def get_income(self, income_id: str) -> Optional[Income]:
        """
        Dereference an income.

        Raises:
            PersistenceReadError: The document exists but cannot be decoded
        """
        pass

    async def get_expenses(
        self,
        expense_ids: Sequence[str],
    ) -> list[Union[Expense, None, Exception]]:
        """
        Dereference several expenses.

        Returns one entry per ID, in order: the expense, None if it doesn't
        exist, or the exception raised while reading it. Backends that can
        read a whole collection at once should override this.
        """
        return await asyncio.gather(
            *(self.get_expense(expense_id) for expense_id in expense_ids),
            return_exceptions=True,
        )

    async def get_incomes(
        self,
        income_ids: Sequence[str],
    ) -> list[Union[Income, None, Exception]]:
        """Dereference several incomes. Same contract as `get_expenses`."""
        return await asyncio.gather(
            *(self.get_income(income_id) for income_id in income_ids),
            return_exceptions=True,
        )


# =============================================================================
# Exceptions
# =============================================================================

class AuthenticationError(Exception):
    """Base exception for sign-up and sign-in failures. Shown to the user."""
    pass


class InvalidEmailError(AuthenticationError):
    """The email address is badly formatted."""
    pass


class WeakPasswordError(AuthenticationError):
    """The password is too short."""
    pass


class EmailAlreadyInUseError(AuthenticationError):
    """The email address is already used by another account."""
    pass


class UserNotFoundError(AuthenticationError):
    """There is no user record corresponding to this email."""
    pass


class WrongPasswordError(AuthenticationError):
    """The password is invalid for this email."""
    pass


class DatabaseError(Exception):
    """Base exception for document operations. Logged, never shown."""
    pass


class PersistenceWriteError(DatabaseError):
    """A write did not reach the document store."""
    pass


class PersistenceReadError(DatabaseError):
    """A document could not be read or decoded."""
    pass


class NotFoundError(DatabaseError):
    """Document not found."""
    pass


class DatabaseConnectionError(DatabaseError):
    """Could not connect to the document store."""
    pass
