"""Filtered retrieval: query shaping, row matching and read-time decoration.

The same filter semantics are offered in two forms so both stores agree:
``build_*_query`` adds the predicates to a SQLModel ``select`` and
``*_matches`` evaluates them in Python. Absent criteria (``None``) are skipped,
present ones are ANDed, name sets are match-any and an empty set matches
nothing. ``no_filters`` skips every predicate except ownership.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional
import uuid

from sqlmodel import select

from ..core.clock import as_utc
from ..models.category import (
    CategoryStats,
    ExpenseCategory,
    ExpenseCategoryRead,
    IncomeCategory,
    IncomeCategoryRead,
)
from ..models.filters import (
    ExpenseCategoryFilter,
    IncomeCategoryFilter,
    TransactionFilter,
)
from ..models.transaction import EXPENSE, INCOME, Transaction, TransactionStats


def _lowered(names: Iterable[str]) -> list[str]:
    return [name.strip().lower() for name in names]


def _in_window(
    created_at: datetime,
    created_from: Optional[datetime],
    created_to: Optional[datetime],
) -> bool:
    created_at = as_utc(created_at)
    if created_from is not None and created_at < as_utc(created_from):
        return False
    if created_to is not None and created_at > as_utc(created_to):
        return False
    return True


# ─────────────────────────────
#   TRANSACTIONS
# ─────────────────────────────

def transaction_matches(transaction: Transaction, filters: TransactionFilter) -> bool:
    if filters.no_filters:
        return True
    if filters.categories is not None and transaction.category_name not in _lowered(filters.categories):
        return False
    if filters.category_type is not None and transaction.category_type != filters.category_type:
        return False
    if filters.min_amount is not None and transaction.amount < filters.min_amount:
        return False
    if filters.max_amount is not None and transaction.amount > filters.max_amount:
        return False
    if filters.currency is not None and transaction.currency != filters.currency:
        return False
    return _in_window(transaction.created_at, filters.created_from, filters.created_to)


def build_transaction_query(user_id: uuid.UUID, filters: TransactionFilter):
    stmt = select(Transaction).where(Transaction.user_id == user_id)
    if not filters.no_filters:
        if filters.categories is not None:
            stmt = stmt.where(Transaction.category_name.in_(_lowered(filters.categories)))
        if filters.category_type is not None:
            stmt = stmt.where(Transaction.category_type == filters.category_type)
        if filters.min_amount is not None:
            stmt = stmt.where(Transaction.amount >= filters.min_amount)
        if filters.max_amount is not None:
            stmt = stmt.where(Transaction.amount <= filters.max_amount)
        if filters.currency is not None:
            stmt = stmt.where(Transaction.currency == filters.currency)
        if filters.created_from is not None:
            stmt = stmt.where(Transaction.created_at >= as_utc(filters.created_from))
        if filters.created_to is not None:
            stmt = stmt.where(Transaction.created_at <= as_utc(filters.created_to))
    return stmt.order_by(Transaction.created_at.desc())


# ─────────────────────────────
#   CATEGORIES
# ─────────────────────────────

def expense_category_matches(category: ExpenseCategory, filters: ExpenseCategoryFilter) -> bool:
    if filters.no_filters:
        return True
    if filters.names is not None and category.name not in _lowered(filters.names):
        return False
    if filters.max_amount is not None and category.max_amount > filters.max_amount:
        return False
    if filters.period_day is not None and category.period_day < filters.period_day:
        return False
    return _in_window(category.created_at, filters.created_from, filters.created_to)


def build_expense_category_query(user_id: uuid.UUID, filters: ExpenseCategoryFilter):
    stmt = select(ExpenseCategory).where(ExpenseCategory.user_id == user_id)
    if not filters.no_filters:
        if filters.names is not None:
            stmt = stmt.where(ExpenseCategory.name.in_(_lowered(filters.names)))
        if filters.max_amount is not None:
            stmt = stmt.where(ExpenseCategory.max_amount <= filters.max_amount)
        if filters.period_day is not None:
            stmt = stmt.where(ExpenseCategory.period_day >= filters.period_day)
        if filters.created_from is not None:
            stmt = stmt.where(ExpenseCategory.created_at >= as_utc(filters.created_from))
        if filters.created_to is not None:
            stmt = stmt.where(ExpenseCategory.created_at <= as_utc(filters.created_to))
    return stmt.order_by(ExpenseCategory.created_at.desc())


def income_category_matches(category: IncomeCategory, filters: IncomeCategoryFilter) -> bool:
    if filters.no_filters:
        return True
    if filters.names is not None and category.name not in _lowered(filters.names):
        return False
    if filters.target_amount is not None and category.target_amount > filters.target_amount:
        return False
    return _in_window(category.created_at, filters.created_from, filters.created_to)


def build_income_category_query(user_id: uuid.UUID, filters: IncomeCategoryFilter):
    stmt = select(IncomeCategory).where(IncomeCategory.user_id == user_id)
    if not filters.no_filters:
        if filters.names is not None:
            stmt = stmt.where(IncomeCategory.name.in_(_lowered(filters.names)))
        if filters.target_amount is not None:
            stmt = stmt.where(IncomeCategory.target_amount <= filters.target_amount)
        if filters.created_from is not None:
            stmt = stmt.where(IncomeCategory.created_at >= as_utc(filters.created_from))
        if filters.created_to is not None:
            stmt = stmt.where(IncomeCategory.created_at <= as_utc(filters.created_to))
    return stmt.order_by(IncomeCategory.created_at.desc())


def expense_category_read(category: ExpenseCategory, amount: float) -> ExpenseCategoryRead:
    return ExpenseCategoryRead(
        id=category.id,
        user_id=category.user_id,
        name=category.name,
        max_amount=category.max_amount,
        period_day=category.period_day,
        note=category.note,
        created_at=as_utc(category.created_at),
        updated_at=as_utc(category.updated_at),
        amount=amount,
    )


def income_category_read(category: IncomeCategory, amount: float) -> IncomeCategoryRead:
    return IncomeCategoryRead(
        id=category.id,
        user_id=category.user_id,
        name=category.name,
        target_amount=category.target_amount,
        note=category.note,
        created_at=as_utc(category.created_at),
        updated_at=as_utc(category.updated_at),
        amount=amount,
    )


# ─────────────────────────────
#   READ-TIME DERIVED FIELDS
# ─────────────────────────────

def usage_percent(amount: float, limit: float) -> int:
    """Share of ``limit`` used by ``amount`` as a truncated whole percent; 0 for a non-positive limit."""
    if limit <= 0:
        return 0
    return int((amount / limit) * 100)


def is_expired(created_at: datetime, period_day: int, now: datetime) -> bool:
    try:
        ends_at = as_utc(created_at) + timedelta(days=period_day)
    except OverflowError:
        # window ends past datetime.max
        return False
    return as_utc(now) > ends_at


def decorate_expense_category(category: ExpenseCategoryRead, now: datetime) -> ExpenseCategoryRead:
    return category.model_copy(
        update={
            "usage_percent": usage_percent(category.amount, category.max_amount),
            "is_expired": is_expired(category.created_at, category.period_day, now),
        }
    )


def decorate_income_category(category: IncomeCategoryRead) -> IncomeCategoryRead:
    return category.model_copy(
        update={"usage_percent": usage_percent(category.amount, category.target_amount)}
    )


# ─────────────────────────────
#   STATISTICS
# ─────────────────────────────

def transaction_stats(transactions: Iterable[Transaction]) -> TransactionStats:
    stats = TransactionStats()
    for transaction in transactions:
        if transaction.category_type == EXPENSE:
            stats.expenses += transaction.amount
        elif transaction.category_type == INCOME:
            stats.incomes += transaction.amount
        stats.total += transaction.amount
    return stats


def category_stats(limits: Iterable[float]) -> CategoryStats:
    """Count categories by cap or target: up to 500, 501 to 1000, above 1000."""
    stats = CategoryStats()
    for limit in limits:
        if limit <= 500:
            stats.less_than_500 += 1
        elif limit <= 1000:
            stats.between_501_and_1000 += 1
        else:
            stats.more_than_1000 += 1
    return stats
