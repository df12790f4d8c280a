"""
Abstract Storage Port

The ledger service only ever talks to persistence through this interface.
Two implementations ship with the project:

1. ``InMemoryStorage`` - dict-backed, used for tests and throwaway runs
2. ``SQLStorage`` - SQLModel/SQLAlchemy, used for SQLite and PostgreSQL

Contract shared by every implementation:

- every query is scoped by ``user_id``; no method ever returns another
  user's rows
- ids and timestamps arrive already generated by the service
- datetimes come back timezone-aware in UTC
- failures with a known meaning are raised as ``LedgerError`` (``CONFLICT``
  for duplicates, ``NOT_FOUND`` for missing rows); anything else may escape
  as-is and is wrapped by the service
- atomicity of multi-row changes (cascading deletes, renames) is the
  implementation's job; the service holds no locks
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
import uuid

from ..models.category import (
    ExpenseCategory,
    ExpenseCategoryRead,
    ExpenseCategoryUpdate,
    IncomeCategory,
    IncomeCategoryRead,
    IncomeCategoryUpdate,
)
from ..models.filters import (
    ExpenseCategoryFilter,
    IncomeCategoryFilter,
    TransactionFilter,
)
from ..models.session import UserSession
from ..models.transaction import Transaction
from ..models.user import User


class StoragePort(ABC):

    @abstractmethod
    def get_storage_type(self) -> str:
        """Human-readable backend name. Diagnostic only."""

    # --- users ---

    @abstractmethod
    def save_user(self, user: User) -> None:
        """
        Insert a new user.

        Raises:
            LedgerError(CONFLICT): username already stored
        """

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]:
        pass

    @abstractmethod
    def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        pass

    @abstractmethod
    def is_user_exists(self, username: str) -> bool:
        pass

    @abstractmethod
    def is_email_confirmed(self, email: str) -> bool:
        """True when some user owns ``email`` and has no pending confirmation."""

    @abstractmethod
    def confirm_email(self, user_id: uuid.UUID) -> None:
        """
        Clear the user's pending-email marker.

        Raises:
            LedgerError(NOT_FOUND): unknown user
            LedgerError(CONFLICT): another account already confirmed the address
        """

    @abstractmethod
    def delete_user(self, user_id: uuid.UUID) -> None:
        """Remove the user together with sessions, transactions and categories."""

    # --- sessions ---

    @abstractmethod
    def save_session(self, session: UserSession) -> None:
        pass

    @abstractmethod
    def get_session_by_token(self, token: str) -> Optional[UserSession]:
        pass

    @abstractmethod
    def update_session_expiry(self, session_id: uuid.UUID, expire_at: datetime) -> None:
        """
        Move one session's expiry.

        Raises:
            LedgerError(NOT_FOUND): unknown session
        """

    # --- transactions ---

    @abstractmethod
    def save_transaction(self, transaction: Transaction) -> None:
        pass

    @abstractmethod
    def get_transaction_by_id(
        self,
        user_id: uuid.UUID,
        transaction_id: uuid.UUID,
    ) -> Optional[Transaction]:
        pass

    @abstractmethod
    def get_filtered_transactions(
        self,
        user_id: uuid.UUID,
        filters: TransactionFilter,
    ) -> list[Transaction]:
        """Matching transactions, newest first."""

    # --- categories ---

    @abstractmethod
    def category_exists(self, user_id: uuid.UUID, name: str, category_type: str) -> bool:
        """Whether the user owns a category of ``category_type`` ("+"/"-") named ``name``."""

    @abstractmethod
    def save_expense_category(self, category: ExpenseCategory) -> None:
        """
        Raises:
            LedgerError(CONFLICT): the user already has an expense category with this name
        """

    @abstractmethod
    def save_income_category(self, category: IncomeCategory) -> None:
        """
        Raises:
            LedgerError(CONFLICT): the user already has an income category with this name
        """

    @abstractmethod
    def get_filtered_expense_categories(
        self,
        user_id: uuid.UUID,
        filters: ExpenseCategoryFilter,
    ) -> list[ExpenseCategoryRead]:
        """Matching categories, newest first, with ``amount`` filled in."""

    @abstractmethod
    def get_filtered_income_categories(
        self,
        user_id: uuid.UUID,
        filters: IncomeCategoryFilter,
    ) -> list[IncomeCategoryRead]:
        """Matching categories, newest first, with ``amount`` filled in."""

    @abstractmethod
    def update_expense_category(
        self,
        user_id: uuid.UUID,
        update: ExpenseCategoryUpdate,
        updated_at: datetime,
    ) -> ExpenseCategoryRead:
        """
        Overwrite name, cap, period and note. Transactions filed under the
        old name are moved to the new one.

        Raises:
            LedgerError(NOT_FOUND): no such category for this user
            LedgerError(CONFLICT): the new name is taken by another category
        """

    @abstractmethod
    def update_income_category(
        self,
        user_id: uuid.UUID,
        update: IncomeCategoryUpdate,
        updated_at: datetime,
    ) -> IncomeCategoryRead:
        """Same contract as ``update_expense_category``."""

    @abstractmethod
    def delete_expense_category(self, user_id: uuid.UUID, category_id: uuid.UUID) -> None:
        """
        Delete the category and every "-" transaction filed under its name.

        Raises:
            LedgerError(NOT_FOUND): no such category for this user
        """

    @abstractmethod
    def delete_income_category(self, user_id: uuid.UUID, category_id: uuid.UUID) -> None:
        """Same contract as ``delete_expense_category`` for "+" transactions."""
