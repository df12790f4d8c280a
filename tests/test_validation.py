import uuid

import pytest

from budget_tracker.config import Settings
from budget_tracker.errors import ErrorKind, LedgerError
from budget_tracker.models.category import (
    ExpenseCategoryInput,
    ExpenseCategoryUpdate,
    IncomeCategoryInput,
    IncomeCategoryUpdate,
)
from budget_tracker.models.transaction import TransactionInput
from budget_tracker.models.user import Credentials, NewUser
from budget_tracker.services import validation


CONFIG = Settings(password_min_length=1)


def _user(**overrides) -> NewUser:
    fields = dict(username="alice", full_name="Alice Smith", email="a@x.io", password="pw123")
    fields.update(overrides)
    return NewUser(**fields)


def _rejects(func, *args) -> str:
    with pytest.raises(LedgerError) as exc_info:
        func(*args)
    assert exc_info.value.kind == ErrorKind.INVALID_INPUT
    return exc_info.value.message


def test_valid_user_passes():
    assert validation.validate_new_user(_user(), CONFIG) is None


@pytest.mark.parametrize(
    "overrides, fragment",
    [
        ({"username": ""}, "Username is required"),
        ({"username": "Alice!"}, "Username must be"),
        ({"username": "a" * 31}, "Username must be"),
        ({"full_name": "   "}, "Full name is required"),
        ({"full_name": "x" * 256}, "Full name must be at most 255"),
        ({"email": ""}, "Email is required"),
        ({"email": "not-an-email"}, "Email address is not valid"),
        ({"email": "a@" + "b" * 251 + ".io"}, "Email must be at most 255"),
        ({"password": ""}, "Password is required"),
        ({"password": "p" * 73}, "Password must be at most 72"),
    ],
)
def test_user_rules(overrides, fragment):
    assert fragment in _rejects(validation.validate_new_user, _user(**overrides), CONFIG)


def test_first_failing_user_rule_wins():
    message = _rejects(validation.validate_new_user, _user(username="", email="", password=""), CONFIG)
    assert message == "Username is required"


def test_password_min_length_comes_from_settings():
    strict = Settings(password_min_length=8)
    assert "at least 8" in _rejects(validation.validate_new_user, _user(password="short"), strict)


def test_credentials_need_both_fields():
    assert "Username" in _rejects(validation.validate_credentials, Credentials(password="x"))
    assert "Password" in _rejects(validation.validate_credentials, Credentials(username="x"))
    assert validation.validate_credentials(Credentials(username="x", password="y")) is None


@pytest.mark.parametrize(
    "overrides, fragment",
    [
        ({"category_name": ""}, "Category name is required"),
        ({"amount": 0.0}, "too close to zero"),
        ({"amount": 1e-12}, "too close to zero"),
        ({"amount": -5.0}, "cannot be negative"),
        ({"amount": 1e19}, "cannot exceed"),
        ({"category_name": "c" * 256}, "Category name must be at most 255"),
        ({"currency": "u" * 256}, "Currency must be at most 255"),
        ({"note": "n" * 1001}, "Note must be at most 1000"),
    ],
)
def test_transaction_rules(overrides, fragment):
    fields = dict(category_name="food", amount=10.0, currency="USD")
    fields.update(overrides)
    assert fragment in _rejects(validation.validate_transaction, TransactionInput(**fields), CONFIG)


def test_transaction_amount_ceiling_is_configurable():
    tight = Settings(max_transaction_amount=100)
    txn = TransactionInput(category_name="food", amount=100.01)
    assert "cannot exceed" in _rejects(validation.validate_transaction, txn, tight)
    assert validation.validate_transaction(TransactionInput(category_name="food", amount=100), tight) is None


@pytest.mark.parametrize(
    "overrides, fragment",
    [
        ({"name": " "}, "Category name is required"),
        ({"name": "c" * 256}, "at most 255"),
        ({"max_amount": 0}, "greater than zero"),
        ({"max_amount": 1e21}, "cannot exceed"),
        ({"period_day": -1}, "cannot be negative"),
        ({"note": "n" * 1001}, "Note must be at most 1000"),
    ],
)
def test_expense_category_rules(overrides, fragment):
    fields = dict(name="food", max_amount=300.0, period_day=7)
    fields.update(overrides)
    assert fragment in _rejects(validation.validate_expense_category, ExpenseCategoryInput(**fields), CONFIG)


@pytest.mark.parametrize(
    "overrides, fragment",
    [
        ({"name": ""}, "Category name is required"),
        ({"target_amount": -1}, "cannot be negative"),
        ({"target_amount": 1e19}, "cannot exceed"),
        ({"note": "n" * 1001}, "Note must be at most 1000"),
    ],
)
def test_income_category_rules(overrides, fragment):
    fields = dict(name="salary", target_amount=1000.0)
    fields.update(overrides)
    assert fragment in _rejects(validation.validate_income_category, IncomeCategoryInput(**fields), CONFIG)


def test_zero_income_target_is_allowed():
    assert validation.validate_income_category(IncomeCategoryInput(name="gifts", target_amount=0), CONFIG) is None


def test_updates_apply_the_same_rules():
    bad_expense = ExpenseCategoryUpdate(id=uuid.uuid4(), new_name="food", new_max_amount=0)
    assert "greater than zero" in _rejects(validation.validate_expense_category_update, bad_expense, CONFIG)

    bad_income = IncomeCategoryUpdate(id=uuid.uuid4(), new_name="", new_target_amount=10)
    assert "Category name is required" in _rejects(validation.validate_income_category_update, bad_income, CONFIG)


def test_validation_is_idempotent():
    txn = TransactionInput(category_name="food", amount=-1)
    assert _rejects(validation.validate_transaction, txn, CONFIG) == _rejects(
        validation.validate_transaction, txn, CONFIG
    )


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("alice smith", "Alice Smith"),
        ("  mary   ann  o'neil ", "Mary Ann O'neil"),
        ("mcDONALD", "McDONALD"),
        ("", ""),
    ],
)
def test_capitalize_full_name(raw, expected):
    assert validation.capitalize_full_name(raw) == expected


@pytest.mark.parametrize("amount", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_transaction_amount_is_rejected(amount):
    txn = TransactionInput(category_name="food", amount=amount)
    assert _rejects(validation.validate_transaction, txn, CONFIG) == "Amount must be a number"


@pytest.mark.parametrize("value", [float("nan"), float("inf")])
def test_non_finite_category_limits_are_rejected(value):
    expense = ExpenseCategoryInput(name="food", max_amount=value)
    assert _rejects(validation.validate_expense_category, expense, CONFIG) == "Max amount must be a number"

    income = IncomeCategoryInput(name="salary", target_amount=value)
    assert _rejects(validation.validate_income_category, income, CONFIG) == "Target amount must be a number"

    update = ExpenseCategoryUpdate(id=uuid.uuid4(), new_name="food", new_max_amount=value)
    assert _rejects(validation.validate_expense_category_update, update, CONFIG) == "Max amount must be a number"


def test_period_day_has_an_upper_bound():
    assert validation.validate_expense_category(
        ExpenseCategoryInput(name="decade", max_amount=5, period_day=validation.MAX_PERIOD_DAYS), CONFIG
    ) is None
    too_long = ExpenseCategoryInput(name="forever", max_amount=5, period_day=3_000_000)
    assert "Period day must be at most" in _rejects(validation.validate_expense_category, too_long, CONFIG)
