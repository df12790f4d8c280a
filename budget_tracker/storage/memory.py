import threading
import uuid
from datetime import datetime
from typing import Optional

from ..errors import conflict, not_found
from ..models.category import (
    ExpenseCategory,
    ExpenseCategoryRead,
    ExpenseCategoryUpdate,
    IncomeCategory,
    IncomeCategoryRead,
    IncomeCategoryUpdate,
)
from ..models.filters import ExpenseCategoryFilter, IncomeCategoryFilter, TransactionFilter
from ..models.session import UserSession
from ..models.transaction import EXPENSE, INCOME, Transaction
from ..models.user import User
from ..services.retrieval import (
    expense_category_matches,
    expense_category_read,
    income_category_matches,
    income_category_read,
    transaction_matches,
)
from .interface import StoragePort


def _clone(row):
    # fresh instance, so callers never hold a reference into the store
    return type(row)(**row.model_dump())


class InMemoryStorage(StoragePort):
    """Dict-backed store for tests and throwaway runs."""

    def __init__(self):
        self._lock = threading.RLock()
        self._users: dict[uuid.UUID, User] = {}
        self._sessions: dict[uuid.UUID, UserSession] = {}
        self._transactions: dict[uuid.UUID, Transaction] = {}
        self._expense_categories: dict[uuid.UUID, ExpenseCategory] = {}
        self._income_categories: dict[uuid.UUID, IncomeCategory] = {}

    def get_storage_type(self) -> str:
        return "In-Memory"

    # --- users ---

    def save_user(self, user: User) -> None:
        with self._lock:
            if any(u.username == user.username for u in self._users.values()):
                raise conflict("Username already taken!")
            self._users[user.id] = _clone(user)

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            for user in self._users.values():
                if user.username == username:
                    return _clone(user)
        return None

    def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            return _clone(user) if user else None

    def is_user_exists(self, username: str) -> bool:
        return self.get_user_by_username(username) is not None

    def is_email_confirmed(self, email: str) -> bool:
        with self._lock:
            return any(
                u.email == email and u.pending_email is None for u in self._users.values()
            )

    def confirm_email(self, user_id: uuid.UUID) -> None:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise not_found("User does not exist.")
            if user.pending_email is not None and any(
                other.id != user_id and other.email == user.email and other.pending_email is None
                for other in self._users.values()
            ):
                raise conflict("Email already taken!")
            user.pending_email = None

    def delete_user(self, user_id: uuid.UUID) -> None:
        with self._lock:
            if self._users.pop(user_id, None) is None:
                raise not_found("User does not exist.")
            for table in (
                self._sessions,
                self._transactions,
                self._expense_categories,
                self._income_categories,
            ):
                for key in [k for k, row in table.items() if row.user_id == user_id]:
                    del table[key]

    # --- sessions ---

    def save_session(self, session: UserSession) -> None:
        with self._lock:
            self._sessions[session.id] = _clone(session)

    def get_session_by_token(self, token: str) -> Optional[UserSession]:
        with self._lock:
            for session in self._sessions.values():
                if session.token == token:
                    return _clone(session)
        return None

    def update_session_expiry(self, session_id: uuid.UUID, expire_at: datetime) -> None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise not_found("Session does not exist.")
            session.expire_at = expire_at

    # --- transactions ---

    def save_transaction(self, transaction: Transaction) -> None:
        with self._lock:
            self._transactions[transaction.id] = _clone(transaction)

    def get_transaction_by_id(
        self,
        user_id: uuid.UUID,
        transaction_id: uuid.UUID,
    ) -> Optional[Transaction]:
        with self._lock:
            transaction = self._transactions.get(transaction_id)
            if transaction is None or transaction.user_id != user_id:
                return None
            return _clone(transaction)

    def get_filtered_transactions(
        self,
        user_id: uuid.UUID,
        filters: TransactionFilter,
    ) -> list[Transaction]:
        with self._lock:
            rows = [
                _clone(t)
                for t in self._transactions.values()
                if t.user_id == user_id and transaction_matches(t, filters)
            ]
        return sorted(rows, key=lambda t: t.created_at, reverse=True)

    def _total(self, user_id: uuid.UUID, name: str, category_type: str) -> float:
        return sum(
            t.amount
            for t in self._transactions.values()
            if t.user_id == user_id and t.category_name == name and t.category_type == category_type
        )

    def _rename_transactions(self, user_id: uuid.UUID, old: str, new: str, category_type: str) -> None:
        for t in self._transactions.values():
            if t.user_id == user_id and t.category_name == old and t.category_type == category_type:
                t.category_name = new

    def _drop_transactions(self, user_id: uuid.UUID, name: str, category_type: str) -> None:
        doomed = [
            key
            for key, t in self._transactions.items()
            if t.user_id == user_id and t.category_name == name and t.category_type == category_type
        ]
        for key in doomed:
            del self._transactions[key]

    # --- categories ---

    def category_exists(self, user_id: uuid.UUID, name: str, category_type: str) -> bool:
        with self._lock:
            if category_type == EXPENSE:
                table = self._expense_categories
            elif category_type == INCOME:
                table = self._income_categories
            else:
                return False
            return any(c.user_id == user_id and c.name == name for c in table.values())

    def save_expense_category(self, category: ExpenseCategory) -> None:
        with self._lock:
            if self.category_exists(category.user_id, category.name, EXPENSE):
                raise conflict("The category already exists.")
            self._expense_categories[category.id] = _clone(category)

    def save_income_category(self, category: IncomeCategory) -> None:
        with self._lock:
            if self.category_exists(category.user_id, category.name, INCOME):
                raise conflict("The category already exists.")
            self._income_categories[category.id] = _clone(category)

    def get_filtered_expense_categories(
        self,
        user_id: uuid.UUID,
        filters: ExpenseCategoryFilter,
    ) -> list[ExpenseCategoryRead]:
        with self._lock:
            rows = [
                expense_category_read(c, self._total(user_id, c.name, EXPENSE))
                for c in self._expense_categories.values()
                if c.user_id == user_id and expense_category_matches(c, filters)
            ]
        return sorted(rows, key=lambda c: c.created_at, reverse=True)

    def get_filtered_income_categories(
        self,
        user_id: uuid.UUID,
        filters: IncomeCategoryFilter,
    ) -> list[IncomeCategoryRead]:
        with self._lock:
            rows = [
                income_category_read(c, self._total(user_id, c.name, INCOME))
                for c in self._income_categories.values()
                if c.user_id == user_id and income_category_matches(c, filters)
            ]
        return sorted(rows, key=lambda c: c.created_at, reverse=True)

    def update_expense_category(
        self,
        user_id: uuid.UUID,
        update: ExpenseCategoryUpdate,
        updated_at: datetime,
    ) -> ExpenseCategoryRead:
        with self._lock:
            category = self._expense_categories.get(update.id)
            if category is None or category.user_id != user_id:
                raise not_found("The category does not exist.")
            if update.new_name != category.name and self.category_exists(user_id, update.new_name, EXPENSE):
                raise conflict("The category already exists.")

            self._rename_transactions(user_id, category.name, update.new_name, EXPENSE)
            category.name = update.new_name
            category.max_amount = update.new_max_amount
            category.period_day = update.new_period_day
            category.note = update.new_note
            category.updated_at = updated_at
            return expense_category_read(category, self._total(user_id, category.name, EXPENSE))

    def update_income_category(
        self,
        user_id: uuid.UUID,
        update: IncomeCategoryUpdate,
        updated_at: datetime,
    ) -> IncomeCategoryRead:
        with self._lock:
            category = self._income_categories.get(update.id)
            if category is None or category.user_id != user_id:
                raise not_found("The category does not exist.")
            if update.new_name != category.name and self.category_exists(user_id, update.new_name, INCOME):
                raise conflict("The category already exists.")

            self._rename_transactions(user_id, category.name, update.new_name, INCOME)
            category.name = update.new_name
            category.target_amount = update.new_target_amount
            category.note = update.new_note
            category.updated_at = updated_at
            return income_category_read(category, self._total(user_id, category.name, INCOME))

    def delete_expense_category(self, user_id: uuid.UUID, category_id: uuid.UUID) -> None:
        with self._lock:
            category = self._expense_categories.get(category_id)
            if category is None or category.user_id != user_id:
                raise not_found("The category does not exist.")
            self._drop_transactions(user_id, category.name, EXPENSE)
            del self._expense_categories[category_id]

    def delete_income_category(self, user_id: uuid.UUID, category_id: uuid.UUID) -> None:
        with self._lock:
            category = self._income_categories.get(category_id)
            if category is None or category.user_id != user_id:
                raise not_found("The category does not exist.")
            self._drop_transactions(user_id, category.name, INCOME)
            del self._income_categories[category_id]
