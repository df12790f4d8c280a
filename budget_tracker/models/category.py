import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import SQLModel, Field

from ..core.clock import utcnow
from .transaction import EXPENSE, INCOME, Transaction


class ExpenseCategory(SQLModel, table=True):
    __tablename__ = "expense_categories"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_expense_category_user_name"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)

    name: str = Field(max_length=255)
    max_amount: float
    # Budget window length, counted from created_at
    period_day: int = Field(default=0)
    note: str = Field(default="", max_length=1000)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class IncomeCategory(SQLModel, table=True):
    __tablename__ = "income_categories"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_income_category_user_name"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)

    name: str = Field(max_length=255)
    target_amount: float
    note: str = Field(default="", max_length=1000)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class ExpenseCategoryInput(SQLModel):
    name: str = ""
    max_amount: float = 0.0
    period_day: int = 0
    note: str = ""


class IncomeCategoryInput(SQLModel):
    name: str = ""
    target_amount: float = 0.0
    note: str = ""


class ExpenseCategoryUpdate(SQLModel):
    id: uuid.UUID
    new_name: str = ""
    new_max_amount: float = 0.0
    new_period_day: int = 0
    new_note: str = ""


class IncomeCategoryUpdate(SQLModel):
    id: uuid.UUID
    new_name: str = ""
    new_target_amount: float = 0.0
    new_note: str = ""


class ExpenseCategoryRead(SQLModel):
    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    max_amount: float
    period_day: int
    note: str
    created_at: datetime
    updated_at: datetime
    type: str = EXPENSE

    # Sum of the owner's "-" transactions filed under this name
    amount: float = 0.0

    # Read-time only, never stored
    usage_percent: int = 0
    is_expired: bool = False


class IncomeCategoryRead(SQLModel):
    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    target_amount: float
    note: str
    created_at: datetime
    updated_at: datetime
    type: str = INCOME

    amount: float = 0.0

    usage_percent: int = 0


class CategoryStats(SQLModel):
    less_than_500: int = 0
    between_501_and_1000: int = 0
    more_than_1000: int = 0


class UserDataExport(SQLModel):
    expense_categories: list[ExpenseCategoryRead] = []
    income_categories: list[IncomeCategoryRead] = []
    transactions: list[Transaction] = []
    exported_at: Optional[datetime] = None
