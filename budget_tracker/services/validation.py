"""Business-rule checks for every write the ledger accepts.

Each validator is pure: it reads its input and the limits in ``Settings`` and
either returns ``None`` or raises ``LedgerError(INVALID_INPUT)`` for the first
rule that fails. Rules are checked in a fixed order so the same input always
gets the same message.
"""

import math
import re

from ..config import Settings
from ..errors import invalid_input
from ..models.category import (
    ExpenseCategoryInput,
    ExpenseCategoryUpdate,
    IncomeCategoryInput,
    IncomeCategoryUpdate,
)
from ..models.transaction import TransactionInput
from ..models.user import Credentials, NewUser


USERNAME_RE = re.compile(r"^[a-z0-9_]{1,30}$")
EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9](\.?[a-zA-Z0-9_%+-])*@[a-zA-Z0-9-]+(\.[a-zA-Z0-9-]+)*\.[a-zA-Z]{2,}$"
)

MAX_NAME_LENGTH = 255
MAX_EMAIL_LENGTH = 255
MAX_NOTE_LENGTH = 1000
MAX_CURRENCY_LENGTH = 255
MAX_PASSWORD_LENGTH = 72

ZERO_TOLERANCE = 1e-9
# a century; keeps created_at + period inside the datetime range
MAX_PERIOD_DAYS = 36500


def capitalize_full_name(name: str) -> str:
    words = []
    for word in name.split():
        words.append(word[0].upper() + word[1:])
    return " ".join(words)


# ─────────────────────────────
#   USERS
# ─────────────────────────────

def validate_new_user(user: NewUser, config: Settings) -> None:
    if not user.username:
        raise invalid_input("Username is required")
    if not USERNAME_RE.match(user.username):
        raise invalid_input(
            "Username must be 1 to 30 characters of lowercase letters, digits or underscore"
        )

    if not user.full_name.strip():
        raise invalid_input("Full name is required")
    if len(user.full_name) > MAX_NAME_LENGTH:
        raise invalid_input(f"Full name must be at most {MAX_NAME_LENGTH} characters")

    if not user.email:
        raise invalid_input("Email is required")
    if not EMAIL_RE.match(user.email):
        raise invalid_input("Email address is not valid")
    if len(user.email) > MAX_EMAIL_LENGTH:
        raise invalid_input(f"Email must be at most {MAX_EMAIL_LENGTH} characters")

    if not user.password:
        raise invalid_input("Password is required")
    if len(user.password) < config.password_min_length:
        raise invalid_input(f"Password must be at least {config.password_min_length} characters")
    if len(user.password) > MAX_PASSWORD_LENGTH:
        raise invalid_input(f"Password must be at most {MAX_PASSWORD_LENGTH} characters")


def validate_credentials(credentials: Credentials) -> None:
    if not credentials.username:
        raise invalid_input("Username is required")
    if not credentials.password:
        raise invalid_input("Password is required")


# ─────────────────────────────
#   TRANSACTIONS
# ─────────────────────────────

def validate_transaction(transaction: TransactionInput, config: Settings) -> None:
    if not transaction.category_name.strip():
        raise invalid_input("Category name is required")
    if not math.isfinite(transaction.amount):
        raise invalid_input("Amount must be a number")
    if abs(transaction.amount) < ZERO_TOLERANCE:
        raise invalid_input("Amount is too close to zero")
    if transaction.amount < 0:
        raise invalid_input("Amount cannot be negative")
    if transaction.amount > config.max_transaction_amount:
        raise invalid_input(f"Amount cannot exceed {config.max_transaction_amount:.0f}")
    if len(transaction.category_name) > MAX_NAME_LENGTH:
        raise invalid_input(f"Category name must be at most {MAX_NAME_LENGTH} characters")
    if len(transaction.currency) > MAX_CURRENCY_LENGTH:
        raise invalid_input(f"Currency must be at most {MAX_CURRENCY_LENGTH} characters")
    if len(transaction.note) > MAX_NOTE_LENGTH:
        raise invalid_input(f"Note must be at most {MAX_NOTE_LENGTH} characters")


# ─────────────────────────────
#   CATEGORIES
# ─────────────────────────────

def _check_expense_fields(name: str, max_amount: float, period_day: int, note: str, config: Settings) -> None:
    if not name.strip():
        raise invalid_input("Category name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise invalid_input(f"Category name must be at most {MAX_NAME_LENGTH} characters")
    if not math.isfinite(max_amount):
        raise invalid_input("Max amount must be a number")
    if max_amount <= 0:
        raise invalid_input("Max amount must be greater than zero")
    if max_amount > config.max_category_amount:
        raise invalid_input(f"Max amount cannot exceed {config.max_category_amount:.2f}")
    if period_day < 0:
        raise invalid_input("Period day cannot be negative")
    if period_day > MAX_PERIOD_DAYS:
        raise invalid_input(f"Period day must be at most {MAX_PERIOD_DAYS}")
    if len(note) > MAX_NOTE_LENGTH:
        raise invalid_input(f"Note must be at most {MAX_NOTE_LENGTH} characters")


def _check_income_fields(name: str, target_amount: float, note: str, config: Settings) -> None:
    if not name.strip():
        raise invalid_input("Category name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise invalid_input(f"Category name must be at most {MAX_NAME_LENGTH} characters")
    if not math.isfinite(target_amount):
        raise invalid_input("Target amount must be a number")
    if target_amount < 0:
        raise invalid_input("Target amount cannot be negative")
    if target_amount > config.max_target_amount:
        raise invalid_input(f"Target amount cannot exceed {config.max_target_amount:.0f}")
    if len(note) > MAX_NOTE_LENGTH:
        raise invalid_input(f"Note must be at most {MAX_NOTE_LENGTH} characters")


def validate_expense_category(category: ExpenseCategoryInput, config: Settings) -> None:
    _check_expense_fields(category.name, category.max_amount, category.period_day, category.note, config)


def validate_income_category(category: IncomeCategoryInput, config: Settings) -> None:
    _check_income_fields(category.name, category.target_amount, category.note, config)


def validate_expense_category_update(update: ExpenseCategoryUpdate, config: Settings) -> None:
    _check_expense_fields(update.new_name, update.new_max_amount, update.new_period_day, update.new_note, config)


def validate_income_category_update(update: IncomeCategoryUpdate, config: Settings) -> None:
    _check_income_fields(update.new_name, update.new_target_amount, update.new_note, config)
