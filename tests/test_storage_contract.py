"""Behaviour every StoragePort implementation must share. Runs once per backend."""

import uuid
from datetime import timedelta

import pytest

from budget_tracker.errors import ErrorKind, LedgerError
from budget_tracker.models.category import (
    ExpenseCategory,
    ExpenseCategoryUpdate,
    IncomeCategory,
    IncomeCategoryUpdate,
)
from budget_tracker.models.filters import ExpenseCategoryFilter, IncomeCategoryFilter, TransactionFilter
from budget_tracker.models.session import UserSession
from budget_tracker.models.transaction import EXPENSE, INCOME, Transaction
from budget_tracker.models.user import User


def _user(clock, username="carol", email="carol@x.io", pending=True) -> User:
    return User(
        id=uuid.uuid4(),
        username=username,
        full_name="Carol",
        email=email,
        pending_email=email if pending else None,
        hashed_password="pbkdf2_sha256$00$00",
        created_at=clock(),
    )


def _expense(clock, user_id, name="food", max_amount=300.0) -> ExpenseCategory:
    return ExpenseCategory(
        id=uuid.uuid4(),
        user_id=user_id,
        name=name,
        max_amount=max_amount,
        period_day=30,
        note="",
        created_at=clock(),
        updated_at=clock(),
    )


def _income(clock, user_id, name="salary", target=1000.0) -> IncomeCategory:
    return IncomeCategory(
        id=uuid.uuid4(),
        user_id=user_id,
        name=name,
        target_amount=target,
        note="",
        created_at=clock(),
        updated_at=clock(),
    )


def _txn(clock, user_id, name="food", category_type=EXPENSE, amount=10.0) -> Transaction:
    return Transaction(
        id=uuid.uuid4(),
        user_id=user_id,
        category_name=name,
        category_type=category_type,
        amount=amount,
        currency="USD",
        note="",
        created_at=clock(),
    )


@pytest.fixture
def owner(storage, clock):
    user = _user(clock)
    storage.save_user(user)
    return user


# ─────────────────────────────
#   USERS & SESSIONS
# ─────────────────────────────

def test_storage_type_is_reported(storage):
    assert storage.get_storage_type() in ("In-Memory", "SQL (sqlite)")


def test_user_round_trip(storage, owner):
    loaded = storage.get_user_by_username("carol")
    assert loaded.id == owner.id
    assert loaded.created_at.tzinfo is not None
    assert storage.get_user_by_id(owner.id).username == "carol"
    assert storage.is_user_exists("carol")
    assert not storage.is_user_exists("dave")
    assert storage.get_user_by_username("dave") is None


def test_duplicate_username_is_conflict(storage, owner, clock):
    with pytest.raises(LedgerError) as exc_info:
        storage.save_user(_user(clock, email="other@x.io"))
    assert exc_info.value.kind == ErrorKind.CONFLICT


def test_only_confirmed_email_counts(storage, owner):
    assert not storage.is_email_confirmed("carol@x.io")
    storage.confirm_email(owner.id)
    assert storage.is_email_confirmed("carol@x.io")
    assert storage.get_user_by_id(owner.id).pending_email is None


def test_confirm_unknown_user_is_not_found(storage):
    with pytest.raises(LedgerError) as exc_info:
        storage.confirm_email(uuid.uuid4())
    assert exc_info.value.kind == ErrorKind.NOT_FOUND


def test_session_expiry_update(storage, owner, clock):
    session = UserSession(
        id=uuid.uuid4(),
        token="ab" * 16,
        user_id=owner.id,
        created_at=clock(),
        expire_at=clock() + timedelta(days=90),
    )
    storage.save_session(session)
    new_expiry = clock() + timedelta(days=1)
    storage.update_session_expiry(session.id, new_expiry)

    assert storage.get_session_by_token("ab" * 16).expire_at == new_expiry
    assert storage.get_session_by_token("cd" * 16) is None
    with pytest.raises(LedgerError) as exc_info:
        storage.update_session_expiry(uuid.uuid4(), new_expiry)
    assert exc_info.value.kind == ErrorKind.NOT_FOUND


def test_delete_user_cascades(storage, owner, clock):
    storage.save_expense_category(_expense(clock, owner.id))
    storage.save_transaction(_txn(clock, owner.id))
    storage.delete_user(owner.id)

    assert storage.get_user_by_id(owner.id) is None
    assert storage.get_filtered_transactions(owner.id, TransactionFilter.all()) == []
    assert storage.get_filtered_expense_categories(owner.id, ExpenseCategoryFilter.all()) == []


# ─────────────────────────────
#   TRANSACTIONS
# ─────────────────────────────

def test_transactions_are_scoped_and_newest_first(storage, owner, clock):
    other = _user(clock, username="dave", email="dave@x.io")
    storage.save_user(other)

    first = _txn(clock, owner.id)
    storage.save_transaction(first)
    clock.advance(minutes=1)
    second = _txn(clock, owner.id, amount=20.0)
    storage.save_transaction(second)
    storage.save_transaction(_txn(clock, other.id))

    rows = storage.get_filtered_transactions(owner.id, TransactionFilter.all())
    assert [t.id for t in rows] == [second.id, first.id]
    assert storage.get_transaction_by_id(owner.id, first.id).amount == 10.0
    assert storage.get_transaction_by_id(other.id, first.id) is None


def test_transaction_filters(storage, owner, clock):
    storage.save_transaction(_txn(clock, owner.id, name="food", amount=5))
    storage.save_transaction(_txn(clock, owner.id, name="rent", amount=500))
    storage.save_transaction(_txn(clock, owner.id, name="salary", category_type=INCOME, amount=1000))

    def names(filters):
        return sorted(t.category_name for t in storage.get_filtered_transactions(owner.id, filters))

    assert names(TransactionFilter(categories=["food", "rent"])) == ["food", "rent"]
    assert names(TransactionFilter(categories=[])) == []
    assert names(TransactionFilter(category_type=INCOME)) == ["salary"]
    assert names(TransactionFilter(min_amount=10, max_amount=600)) == ["rent"]
    assert names(TransactionFilter(currency="EUR")) == []
    assert names(TransactionFilter(created_from=clock() - timedelta(seconds=1), created_to=clock())) == [
        "food", "rent", "salary",
    ]
    assert names(TransactionFilter(created_from=clock() + timedelta(seconds=1))) == []


# ─────────────────────────────
#   CATEGORIES
# ─────────────────────────────

def test_category_exists_by_type(storage, owner, clock):
    storage.save_expense_category(_expense(clock, owner.id, name="food"))
    assert storage.category_exists(owner.id, "food", EXPENSE)
    assert not storage.category_exists(owner.id, "food", INCOME)
    assert not storage.category_exists(uuid.uuid4(), "food", EXPENSE)


def test_duplicate_category_is_conflict(storage, owner, clock):
    storage.save_income_category(_income(clock, owner.id))
    with pytest.raises(LedgerError) as exc_info:
        storage.save_income_category(_income(clock, owner.id))
    assert exc_info.value.kind == ErrorKind.CONFLICT


def test_same_name_allowed_across_users_and_types(storage, owner, clock):
    other = _user(clock, username="dave", email="dave@x.io")
    storage.save_user(other)
    storage.save_expense_category(_expense(clock, owner.id, name="gifts"))
    storage.save_expense_category(_expense(clock, other.id, name="gifts"))
    storage.save_income_category(_income(clock, owner.id, name="gifts"))


def test_category_amount_sums_matching_transactions(storage, owner, clock):
    storage.save_expense_category(_expense(clock, owner.id, name="food"))
    storage.save_income_category(_income(clock, owner.id, name="food"))
    storage.save_transaction(_txn(clock, owner.id, amount=10))
    storage.save_transaction(_txn(clock, owner.id, amount=20.5))
    storage.save_transaction(_txn(clock, owner.id, category_type=INCOME, amount=99))

    [expense] = storage.get_filtered_expense_categories(owner.id, ExpenseCategoryFilter.all())
    [income] = storage.get_filtered_income_categories(owner.id, IncomeCategoryFilter.all())
    assert expense.amount == pytest.approx(30.5)
    assert income.amount == pytest.approx(99)


def test_category_filters(storage, owner, clock):
    storage.save_expense_category(_expense(clock, owner.id, name="food", max_amount=100))
    storage.save_expense_category(_expense(clock, owner.id, name="rent", max_amount=2000))
    storage.save_income_category(_income(clock, owner.id, name="salary", target=5000))
    storage.save_income_category(_income(clock, owner.id, name="gifts", target=50))

    def expense_names(filters):
        return sorted(c.name for c in storage.get_filtered_expense_categories(owner.id, filters))

    def income_names(filters):
        return sorted(c.name for c in storage.get_filtered_income_categories(owner.id, filters))

    assert expense_names(ExpenseCategoryFilter(names=["rent"])) == ["rent"]
    assert expense_names(ExpenseCategoryFilter(names=[])) == []
    assert expense_names(ExpenseCategoryFilter(max_amount=500)) == ["food"]
    assert expense_names(ExpenseCategoryFilter(period_day=31)) == []
    assert income_names(IncomeCategoryFilter(target_amount=100)) == ["gifts"]
    assert income_names(IncomeCategoryFilter.all()) == ["gifts", "salary"]


def test_rename_moves_transactions(storage, owner, clock):
    category = _expense(clock, owner.id, name="food")
    storage.save_expense_category(category)
    storage.save_transaction(_txn(clock, owner.id, amount=40))

    clock.advance(hours=1)
    updated = storage.update_expense_category(
        owner.id,
        ExpenseCategoryUpdate(
            id=category.id, new_name="groceries", new_max_amount=400, new_period_day=14, new_note="weekly"
        ),
        clock(),
    )

    assert updated.name == "groceries"
    assert updated.max_amount == 400
    assert updated.period_day == 14
    assert updated.note == "weekly"
    assert updated.updated_at == clock()
    assert updated.amount == 40
    [moved] = storage.get_filtered_transactions(owner.id, TransactionFilter.all())
    assert moved.category_name == "groceries"


def test_rename_onto_existing_name_is_conflict(storage, owner, clock):
    food = _income(clock, owner.id, name="bonus")
    storage.save_income_category(food)
    storage.save_income_category(_income(clock, owner.id, name="salary"))

    with pytest.raises(LedgerError) as exc_info:
        storage.update_income_category(
            owner.id,
            IncomeCategoryUpdate(id=food.id, new_name="salary", new_target_amount=10),
            clock(),
        )
    assert exc_info.value.kind == ErrorKind.CONFLICT
    assert sorted(
        c.name for c in storage.get_filtered_income_categories(owner.id, IncomeCategoryFilter.all())
    ) == ["bonus", "salary"]


def test_update_someone_elses_category_is_not_found(storage, owner, clock):
    category = _expense(clock, owner.id)
    storage.save_expense_category(category)
    with pytest.raises(LedgerError) as exc_info:
        storage.update_expense_category(
            uuid.uuid4(),
            ExpenseCategoryUpdate(id=category.id, new_name="x", new_max_amount=1),
            clock(),
        )
    assert exc_info.value.kind == ErrorKind.NOT_FOUND


def test_delete_category_drops_its_transactions(storage, owner, clock):
    food = _expense(clock, owner.id, name="food")
    storage.save_expense_category(food)
    storage.save_income_category(_income(clock, owner.id, name="food"))
    storage.save_transaction(_txn(clock, owner.id, amount=10))
    storage.save_transaction(_txn(clock, owner.id, category_type=INCOME, amount=5))

    storage.delete_expense_category(owner.id, food.id)

    remaining = storage.get_filtered_transactions(owner.id, TransactionFilter.all())
    assert [t.category_type for t in remaining] == [INCOME]
    assert not storage.category_exists(owner.id, "food", EXPENSE)
    with pytest.raises(LedgerError) as exc_info:
        storage.delete_expense_category(owner.id, food.id)
    assert exc_info.value.kind == ErrorKind.NOT_FOUND


def test_confirm_rejects_address_confirmed_by_another_user(storage, owner, clock):
    twin = _user(clock, username="carol2")
    storage.save_user(twin)
    storage.confirm_email(twin.id)

    with pytest.raises(LedgerError) as exc_info:
        storage.confirm_email(owner.id)
    assert exc_info.value.kind == ErrorKind.CONFLICT
    assert storage.get_user_by_id(owner.id).pending_email == "carol@x.io"
