"""Filter criteria for the list operations.

Every optional field follows the same rule: ``None`` means the criterion was
not given and is ignored, any other value is applied. For the name sets this
means an empty list is a real filter that matches nothing. ``no_filters``
short-circuits everything else and returns all of the user's rows.
"""

from datetime import datetime
from typing import Mapping, Optional

from sqlmodel import SQLModel

from ..core.clock import as_utc
from ..errors import invalid_input
from .transaction import EXPENSE, INCOME


_TYPE_ALIASES = {
    "income": INCOME,
    "+": INCOME,
    "expense": EXPENSE,
    "-": EXPENSE,
}


def parse_category_type(raw: str) -> str:
    value = (raw or "").strip().lower()
    if value not in _TYPE_ALIASES:
        raise invalid_input("Invalid category type, allowed types are: income and expense")
    return _TYPE_ALIASES[value]


def _parse_names(raw: str) -> list[str]:
    return [name.strip().lower() for name in raw.split(",") if name.strip()]


def _parse_float(params: Mapping[str, str], key: str, label: str) -> Optional[float]:
    raw = params.get(key)
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError:
        raise invalid_input(f"Invalid {label}: {raw!r} is not a number")


def _parse_int(params: Mapping[str, str], key: str, label: str) -> Optional[int]:
    raw = params.get(key)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise invalid_input(f"Invalid {label}: {raw!r} is not a whole number")


def _parse_datetime(params: Mapping[str, str], key: str) -> Optional[datetime]:
    raw = params.get(key)
    if raw is None or raw.strip() == "":
        return None
    try:
        return as_utc(datetime.fromisoformat(raw.strip()))
    except ValueError:
        raise invalid_input(f"Invalid {key}: expected an ISO 8601 date, got {raw!r}")


class TransactionFilter(SQLModel):
    no_filters: bool = False
    categories: Optional[list[str]] = None
    category_type: Optional[str] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    currency: Optional[str] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None

    @classmethod
    def all(cls) -> "TransactionFilter":
        return cls(no_filters=True)

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> "TransactionFilter":
        """Build a filter from query-string parameters.

        Recognized keys: ``categories`` (comma separated), ``type``
        (income/expense), ``min``, ``max``, ``currency``, ``from``, ``to``.
        """
        if not params:
            return cls.all()

        filters = cls()
        if "categories" in params:
            filters.categories = _parse_names(params["categories"])
        if params.get("type"):
            filters.category_type = parse_category_type(params["type"])
        filters.min_amount = _parse_float(params, "min", "minimum amount")
        filters.max_amount = _parse_float(params, "max", "maximum amount")
        if params.get("currency"):
            filters.currency = params["currency"].strip()
        filters.created_from = _parse_datetime(params, "from")
        filters.created_to = _parse_datetime(params, "to")
        return filters


class ExpenseCategoryFilter(SQLModel):
    no_filters: bool = False
    names: Optional[list[str]] = None
    # categories whose cap is at most this value
    max_amount: Optional[float] = None
    # categories whose period is at least this many days
    period_day: Optional[int] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None

    @classmethod
    def all(cls) -> "ExpenseCategoryFilter":
        return cls(no_filters=True)

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> "ExpenseCategoryFilter":
        if not params:
            return cls.all()

        filters = cls()
        if "names" in params:
            filters.names = _parse_names(params["names"])
        filters.max_amount = _parse_float(params, "max", "maximum amount")
        filters.period_day = _parse_int(params, "period", "period day")
        filters.created_from = _parse_datetime(params, "from")
        filters.created_to = _parse_datetime(params, "to")
        return filters


class IncomeCategoryFilter(SQLModel):
    no_filters: bool = False
    names: Optional[list[str]] = None
    # categories whose target is at most this value
    target_amount: Optional[float] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None

    @classmethod
    def all(cls) -> "IncomeCategoryFilter":
        return cls(no_filters=True)

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> "IncomeCategoryFilter":
        if not params:
            return cls.all()

        filters = cls()
        if "names" in params:
            filters.names = _parse_names(params["names"])
        filters.target_amount = _parse_float(params, "target", "target amount")
        filters.created_from = _parse_datetime(params, "from")
        filters.created_to = _parse_datetime(params, "to")
        return filters
