import uuid
from contextlib import contextmanager
from typing import Optional

from ..config import Settings, settings as default_settings
from ..core.clock import Clock, utcnow
from ..core.security import hash_password, verify_password
from ..core.sessions import SessionManager
from ..errors import (
    LedgerError,
    PartialRegistrationError,
    conflict,
    internal,
    invalid_input,
    not_found,
    unauthorized,
)
from ..logging_config import get_logger
from ..models.category import (
    CategoryStats,
    ExpenseCategory,
    ExpenseCategoryInput,
    ExpenseCategoryRead,
    ExpenseCategoryUpdate,
    IncomeCategory,
    IncomeCategoryInput,
    IncomeCategoryRead,
    IncomeCategoryUpdate,
    UserDataExport,
)
from ..models.filters import (
    ExpenseCategoryFilter,
    IncomeCategoryFilter,
    TransactionFilter,
    parse_category_type,
)
from ..models.transaction import EXPENSE, INCOME, Transaction, TransactionInput, TransactionStats
from ..models.user import AccountInfo, Credentials, DeleteAccountRequest, NewUser, User
from ..storage.interface import StoragePort
from . import retrieval, validation


logger = get_logger("ledger")

MISSING_CATEGORY = "The category does not exist, please create the category"
BAD_CREDENTIALS = "Username or Password is incorrect"


class LedgerService:
    """Entry point for every user-facing operation.

    Protected operations take the ``user_id`` returned by :meth:`authorize`.
    Each call validates its input, talks to the store and returns a value or
    raises a single ``LedgerError``. The service keeps no mutable state of its
    own; concurrent calls only meet inside the store.
    """

    def __init__(
        self,
        storage: StoragePort,
        config: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        self._storage = storage
        self._settings = config or default_settings
        self._clock = clock or utcnow
        self._sessions = SessionManager(storage, self._settings, self._clock)

    @property
    def storage_type(self) -> str:
        return self._storage.get_storage_type()

    @contextmanager
    def _storage_errors(self, action: str):
        try:
            yield
        except LedgerError:
            raise
        except Exception as exc:
            logger.error("failed to %s", action, exc_info=True)
            raise internal(f"Failed to {action}, try again later.") from exc

    # ─────────────────────────────
    #   AUTH
    # ─────────────────────────────

    def register(self, new_user: NewUser) -> str:
        """Create the account and log it in. Returns the session token."""
        user_input = NewUser(
            username=new_user.username.strip().lower(),
            full_name=new_user.full_name.strip(),
            email=new_user.email.strip().lower(),
            password=new_user.password,
        )
        validation.validate_new_user(user_input, self._settings)

        with self._storage_errors("check username"):
            if self._storage.is_user_exists(user_input.username):
                raise conflict("Username already taken!")
        with self._storage_errors("check email"):
            if self._storage.is_email_confirmed(user_input.email):
                raise conflict("Email already taken!")

        user = User(
            id=uuid.uuid4(),
            username=user_input.username,
            full_name=validation.capitalize_full_name(user_input.full_name),
            email=user_input.email,
            pending_email=user_input.email,
            hashed_password=hash_password(user_input.password),
            created_at=self._clock(),
        )
        with self._storage_errors("save user"):
            self._storage.save_user(user)
        logger.info("registered user %s (id=%s)", user.username, user.id)

        try:
            return self._sessions.create_session(user.id)
        except LedgerError as exc:
            # the user row stays; the client is told to log in
            raise PartialRegistrationError(user.id) from exc

    def login(self, credentials: Credentials) -> str:
        credentials = Credentials(
            username=credentials.username.strip().lower(),
            password=credentials.password,
        )
        validation.validate_credentials(credentials)

        with self._storage_errors("load user"):
            user = self._storage.get_user_by_username(credentials.username)
        if user is None or not verify_password(credentials.password, user.hashed_password):
            logger.info("login rejected for username=%s", credentials.username)
            raise unauthorized(BAD_CREDENTIALS)

        token = self._sessions.create_session(user.id)
        logger.info("user %s logged in", user.id)
        return token

    def logout(self, user_id: uuid.UUID, token: str) -> None:
        with self._storage_errors("end session"):
            self._sessions.invalidate_session(user_id, token)

    def check_session(self, token: str) -> uuid.UUID:
        with self._storage_errors("check session"):
            return self._sessions.validate_session(token)

    def authorize(self, token: str) -> uuid.UUID:
        """Resolve a bearer token to its user id, renewing the session if due."""
        return self.check_session(token)

    # ─────────────────────────────
    #   ACCOUNT
    # ─────────────────────────────

    def _require_user(self, user_id: uuid.UUID) -> User:
        with self._storage_errors("load user"):
            user = self._storage.get_user_by_id(user_id)
        if user is None:
            raise not_found("User does not exist.")
        return user

    def get_account_info(self, user_id: uuid.UUID) -> AccountInfo:
        user = self._require_user(user_id)
        return AccountInfo(
            username=user.username,
            full_name=user.full_name,
            email=user.email,
            email_confirmed=user.pending_email is None,
            joined_at=user.created_at,
        )

    def confirm_email(self, user_id: uuid.UUID) -> None:
        with self._storage_errors("confirm email"):
            self._storage.confirm_email(user_id)
        logger.info("email confirmed for user %s", user_id)

    def export_user_data(self, user_id: uuid.UUID) -> UserDataExport:
        self._require_user(user_id)
        return UserDataExport(
            expense_categories=self.list_expense_categories(user_id),
            income_categories=self.list_income_categories(user_id),
            transactions=self.list_transactions(user_id),
            exported_at=self._clock(),
        )

    def delete_account(self, user_id: uuid.UUID, request: DeleteAccountRequest) -> None:
        user = self._require_user(user_id)
        if not request.password or not verify_password(request.password, user.hashed_password):
            raise unauthorized("Password is incorrect")

        with self._storage_errors("delete account"):
            self._storage.delete_user(user_id)
        logger.info("account %s deleted, reason=%r", user_id, request.reason)

    # ─────────────────────────────
    #   TRANSACTIONS
    # ─────────────────────────────

    def _resolve_category_type(self, user_id: uuid.UUID, name: str, raw_type: str) -> str:
        if raw_type.strip():
            category_type = parse_category_type(raw_type)
            with self._storage_errors("look up category"):
                if self._storage.category_exists(user_id, name, category_type):
                    return category_type
            raise invalid_input(MISSING_CATEGORY)

        with self._storage_errors("look up category"):
            for category_type in (EXPENSE, INCOME):
                if self._storage.category_exists(user_id, name, category_type):
                    return category_type
        raise invalid_input(MISSING_CATEGORY)

    def create_transaction(self, user_id: uuid.UUID, transaction_input: TransactionInput) -> Transaction:
        transaction_input = transaction_input.model_copy(
            update={
                "category_name": transaction_input.category_name.strip().lower(),
                "currency": transaction_input.currency.strip(),
            }
        )
        validation.validate_transaction(transaction_input, self._settings)
        category_type = self._resolve_category_type(
            user_id, transaction_input.category_name, transaction_input.category_type
        )

        transaction = Transaction(
            id=uuid.uuid4(),
            user_id=user_id,
            category_name=transaction_input.category_name,
            category_type=category_type,
            amount=transaction_input.amount,
            currency=transaction_input.currency,
            note=transaction_input.note,
            created_at=self._clock(),
        )
        with self._storage_errors("save transaction"):
            self._storage.save_transaction(transaction)
        logger.info(
            "transaction %s saved for user %s (%s %s)",
            transaction.id, user_id, category_type, transaction.category_name,
        )
        return transaction

    def list_transactions(
        self,
        user_id: uuid.UUID,
        filters: Optional[TransactionFilter] = None,
    ) -> list[Transaction]:
        with self._storage_errors("get transactions"):
            return self._storage.get_filtered_transactions(user_id, filters or TransactionFilter.all())

    def get_transaction_by_id(self, user_id: uuid.UUID, transaction_id: uuid.UUID) -> Transaction:
        with self._storage_errors("get transaction"):
            transaction = self._storage.get_transaction_by_id(user_id, transaction_id)
        if transaction is None:
            raise not_found("Transaction not found.")
        return transaction

    def get_transaction_stats(
        self,
        user_id: uuid.UUID,
        filters: Optional[TransactionFilter] = None,
    ) -> TransactionStats:
        return retrieval.transaction_stats(self.list_transactions(user_id, filters))

    # ─────────────────────────────
    #   CATEGORIES
    # ─────────────────────────────

    def create_expense_category(
        self,
        user_id: uuid.UUID,
        category_input: ExpenseCategoryInput,
    ) -> ExpenseCategoryRead:
        category_input = category_input.model_copy(
            update={"name": category_input.name.strip().lower()}
        )
        validation.validate_expense_category(category_input, self._settings)

        now = self._clock()
        category = ExpenseCategory(
            id=uuid.uuid4(),
            user_id=user_id,
            name=category_input.name,
            max_amount=category_input.max_amount,
            period_day=category_input.period_day,
            note=category_input.note,
            created_at=now,
            updated_at=now,
        )
        with self._storage_errors("save expense category"):
            self._storage.save_expense_category(category)
        logger.info("expense category %r created for user %s", category.name, user_id)
        return retrieval.decorate_expense_category(retrieval.expense_category_read(category, 0.0), now)

    def create_income_category(
        self,
        user_id: uuid.UUID,
        category_input: IncomeCategoryInput,
    ) -> IncomeCategoryRead:
        category_input = category_input.model_copy(
            update={"name": category_input.name.strip().lower()}
        )
        validation.validate_income_category(category_input, self._settings)

        now = self._clock()
        category = IncomeCategory(
            id=uuid.uuid4(),
            user_id=user_id,
            name=category_input.name,
            target_amount=category_input.target_amount,
            note=category_input.note,
            created_at=now,
            updated_at=now,
        )
        with self._storage_errors("save income category"):
            self._storage.save_income_category(category)
        logger.info("income category %r created for user %s", category.name, user_id)
        return retrieval.decorate_income_category(retrieval.income_category_read(category, 0.0))

    def update_expense_category(
        self,
        user_id: uuid.UUID,
        update: ExpenseCategoryUpdate,
    ) -> ExpenseCategoryRead:
        update = update.model_copy(update={"new_name": update.new_name.strip().lower()})
        validation.validate_expense_category_update(update, self._settings)

        now = self._clock()
        with self._storage_errors("update expense category"):
            updated = self._storage.update_expense_category(user_id, update, now)
        return retrieval.decorate_expense_category(updated, now)

    def update_income_category(
        self,
        user_id: uuid.UUID,
        update: IncomeCategoryUpdate,
    ) -> IncomeCategoryRead:
        update = update.model_copy(update={"new_name": update.new_name.strip().lower()})
        validation.validate_income_category_update(update, self._settings)

        with self._storage_errors("update income category"):
            updated = self._storage.update_income_category(user_id, update, self._clock())
        return retrieval.decorate_income_category(updated)

    def delete_expense_category(self, user_id: uuid.UUID, category_id: uuid.UUID) -> None:
        with self._storage_errors("delete expense category"):
            self._storage.delete_expense_category(user_id, category_id)
        logger.info("expense category %s deleted for user %s", category_id, user_id)

    def delete_income_category(self, user_id: uuid.UUID, category_id: uuid.UUID) -> None:
        with self._storage_errors("delete income category"):
            self._storage.delete_income_category(user_id, category_id)
        logger.info("income category %s deleted for user %s", category_id, user_id)

    def list_expense_categories(
        self,
        user_id: uuid.UUID,
        filters: Optional[ExpenseCategoryFilter] = None,
    ) -> list[ExpenseCategoryRead]:
        with self._storage_errors("get expense categories"):
            rows = self._storage.get_filtered_expense_categories(
                user_id, filters or ExpenseCategoryFilter.all()
            )
        now = self._clock()
        return [retrieval.decorate_expense_category(row, now) for row in rows]

    def list_income_categories(
        self,
        user_id: uuid.UUID,
        filters: Optional[IncomeCategoryFilter] = None,
    ) -> list[IncomeCategoryRead]:
        with self._storage_errors("get income categories"):
            rows = self._storage.get_filtered_income_categories(
                user_id, filters or IncomeCategoryFilter.all()
            )
        return [retrieval.decorate_income_category(row) for row in rows]

    def get_expense_category_stats(
        self,
        user_id: uuid.UUID,
        filters: Optional[ExpenseCategoryFilter] = None,
    ) -> CategoryStats:
        return retrieval.category_stats(c.max_amount for c in self.list_expense_categories(user_id, filters))

    def get_income_category_stats(
        self,
        user_id: uuid.UUID,
        filters: Optional[IncomeCategoryFilter] = None,
    ) -> CategoryStats:
        return retrieval.category_stats(c.target_amount for c in self.list_income_categories(user_id, filters))
