import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..core.clock import as_utc
from ..errors import conflict, not_found
from ..logging_config import get_logger
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
    build_expense_category_query,
    build_income_category_query,
    build_transaction_query,
    expense_category_read,
    income_category_read,
)
from .interface import StoragePort


logger = get_logger("storage.sql")


def _detached(session: Session, row):
    """Normalize timestamps and cut the row loose from its session."""
    if row is None:
        return None
    for field in ("created_at", "updated_at", "expire_at"):
        if hasattr(row, field):
            setattr(row, field, as_utc(getattr(row, field)))
    session.expunge(row)
    return row


class SQLStorage(StoragePort):
    """Relational store on SQLModel. One session and at most one commit per call."""

    def __init__(self, engine: Engine):
        self._engine = engine

    def get_storage_type(self) -> str:
        return f"SQL ({self._engine.dialect.name})"

    def _session(self) -> Session:
        return Session(self._engine, expire_on_commit=False)

    def _insert(self, row, duplicate_message: str) -> None:
        with self._session() as session:
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                logger.warning("integrity error on insert into %s: %s", row.__tablename__, exc.orig)
                raise conflict(duplicate_message) from exc

    # --- users ---

    def save_user(self, user: User) -> None:
        self._insert(user, "Username already taken!")

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._session() as session:
            user = session.exec(select(User).where(User.username == username)).first()
            return _detached(session, user)

    def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        with self._session() as session:
            return _detached(session, session.get(User, user_id))

    def is_user_exists(self, username: str) -> bool:
        with self._session() as session:
            found = session.exec(select(User.id).where(User.username == username)).first()
            return found is not None

    def is_email_confirmed(self, email: str) -> bool:
        with self._session() as session:
            stmt = select(func.count()).select_from(User).where(
                User.email == email,
                User.pending_email.is_(None),
            )
            return session.exec(stmt).one() > 0

    def confirm_email(self, user_id: uuid.UUID) -> None:
        with self._session() as session:
            user = session.get(User, user_id)
            if user is None:
                raise not_found("User does not exist.")
            if user.pending_email is not None:
                taken = session.exec(
                    select(User.id).where(
                        User.id != user_id,
                        User.email == user.email,
                        User.pending_email.is_(None),
                    )
                ).first()
                if taken is not None:
                    raise conflict("Email already taken!")
            user.pending_email = None
            session.add(user)
            session.commit()

    def delete_user(self, user_id: uuid.UUID) -> None:
        with self._session() as session:
            user = session.get(User, user_id)
            if user is None:
                raise not_found("User does not exist.")
            for model in (UserSession, Transaction, ExpenseCategory, IncomeCategory):
                session.exec(delete(model).where(model.user_id == user_id))
            session.delete(user)
            session.commit()

    # --- sessions ---

    def save_session(self, user_session: UserSession) -> None:
        self._insert(user_session, "Session token collision.")

    def get_session_by_token(self, token: str) -> Optional[UserSession]:
        with self._session() as session:
            found = session.exec(select(UserSession).where(UserSession.token == token)).first()
            return _detached(session, found)

    def update_session_expiry(self, session_id: uuid.UUID, expire_at: datetime) -> None:
        with self._session() as session:
            result = session.exec(
                update(UserSession).where(UserSession.id == session_id).values(expire_at=expire_at)
            )
            if result.rowcount == 0:
                session.rollback()
                raise not_found("Session does not exist.")
            session.commit()

    # --- transactions ---

    def save_transaction(self, transaction: Transaction) -> None:
        with self._session() as session:
            session.add(transaction)
            session.commit()

    def get_transaction_by_id(
        self,
        user_id: uuid.UUID,
        transaction_id: uuid.UUID,
    ) -> Optional[Transaction]:
        with self._session() as session:
            stmt = select(Transaction).where(
                Transaction.user_id == user_id,
                Transaction.id == transaction_id,
            )
            return _detached(session, session.exec(stmt).first())

    def get_filtered_transactions(
        self,
        user_id: uuid.UUID,
        filters: TransactionFilter,
    ) -> list[Transaction]:
        with self._session() as session:
            rows = session.exec(build_transaction_query(user_id, filters)).all()
            return [_detached(session, row) for row in rows]

    def _total(self, session: Session, user_id: uuid.UUID, name: str, category_type: str) -> float:
        stmt = select(func.coalesce(func.sum(Transaction.amount), 0.0)).where(
            Transaction.user_id == user_id,
            Transaction.category_name == name,
            Transaction.category_type == category_type,
        )
        return float(session.exec(stmt).one())

    # --- categories ---

    def category_exists(self, user_id: uuid.UUID, name: str, category_type: str) -> bool:
        if category_type == EXPENSE:
            model = ExpenseCategory
        elif category_type == INCOME:
            model = IncomeCategory
        else:
            return False
        with self._session() as session:
            found = session.exec(
                select(model.id).where(model.user_id == user_id, model.name == name)
            ).first()
            return found is not None

    def save_expense_category(self, category: ExpenseCategory) -> None:
        self._insert(category, "The category already exists.")

    def save_income_category(self, category: IncomeCategory) -> None:
        self._insert(category, "The category already exists.")

    def get_filtered_expense_categories(
        self,
        user_id: uuid.UUID,
        filters: ExpenseCategoryFilter,
    ) -> list[ExpenseCategoryRead]:
        with self._session() as session:
            rows = session.exec(build_expense_category_query(user_id, filters)).all()
            return [
                expense_category_read(row, self._total(session, user_id, row.name, EXPENSE))
                for row in rows
            ]

    def get_filtered_income_categories(
        self,
        user_id: uuid.UUID,
        filters: IncomeCategoryFilter,
    ) -> list[IncomeCategoryRead]:
        with self._session() as session:
            rows = session.exec(build_income_category_query(user_id, filters)).all()
            return [
                income_category_read(row, self._total(session, user_id, row.name, INCOME))
                for row in rows
            ]

    def _owned(self, session: Session, model, user_id: uuid.UUID, category_id: uuid.UUID):
        category = session.exec(
            select(model).where(model.user_id == user_id, model.id == category_id)
        ).first()
        if category is None:
            raise not_found("The category does not exist.")
        return category

    def _rename_transactions(
        self,
        session: Session,
        user_id: uuid.UUID,
        old: str,
        new: str,
        category_type: str,
    ) -> None:
        if old == new:
            return
        session.exec(
            update(Transaction)
            .where(
                Transaction.user_id == user_id,
                Transaction.category_name == old,
                Transaction.category_type == category_type,
            )
            .values(category_name=new)
        )

    def _commit_update(self, session: Session) -> None:
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise conflict("The category already exists.") from exc

    def update_expense_category(
        self,
        user_id: uuid.UUID,
        update: ExpenseCategoryUpdate,
        updated_at: datetime,
    ) -> ExpenseCategoryRead:
        with self._session() as session:
            category = self._owned(session, ExpenseCategory, user_id, update.id)
            self._rename_transactions(session, user_id, category.name, update.new_name, EXPENSE)

            category.name = update.new_name
            category.max_amount = update.new_max_amount
            category.period_day = update.new_period_day
            category.note = update.new_note
            category.updated_at = updated_at
            session.add(category)
            self._commit_update(session)

            return expense_category_read(category, self._total(session, user_id, category.name, EXPENSE))

    def update_income_category(
        self,
        user_id: uuid.UUID,
        update: IncomeCategoryUpdate,
        updated_at: datetime,
    ) -> IncomeCategoryRead:
        with self._session() as session:
            category = self._owned(session, IncomeCategory, user_id, update.id)
            self._rename_transactions(session, user_id, category.name, update.new_name, INCOME)

            category.name = update.new_name
            category.target_amount = update.new_target_amount
            category.note = update.new_note
            category.updated_at = updated_at
            session.add(category)
            self._commit_update(session)

            return income_category_read(category, self._total(session, user_id, category.name, INCOME))

    def _delete_category(self, model, category_type: str, user_id: uuid.UUID, category_id: uuid.UUID) -> None:
        with self._session() as session:
            category = self._owned(session, model, user_id, category_id)
            session.exec(
                delete(Transaction).where(
                    Transaction.user_id == user_id,
                    Transaction.category_name == category.name,
                    Transaction.category_type == category_type,
                )
            )
            session.delete(category)
            session.commit()

    def delete_expense_category(self, user_id: uuid.UUID, category_id: uuid.UUID) -> None:
        self._delete_category(ExpenseCategory, EXPENSE, user_id, category_id)

    def delete_income_category(self, user_id: uuid.UUID, category_id: uuid.UUID) -> None:
        self._delete_category(IncomeCategory, INCOME, user_id, category_id)
