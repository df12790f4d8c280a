import uuid
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from ..core.clock import utcnow


INCOME = "+"
EXPENSE = "-"


class Transaction(SQLModel, table=True):
    __tablename__ = "transactions"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)

    category_name: str = Field(max_length=255, index=True)
    # "+" income, "-" expense
    category_type: str = Field(max_length=1)

    amount: float
    currency: str = Field(default="", max_length=255)
    note: str = Field(default="", max_length=1000)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class TransactionInput(SQLModel):
    category_name: str = ""
    # "+", "-", "income", "expense" or blank to resolve from the user's categories
    category_type: str = ""
    amount: float = 0.0
    currency: str = ""
    note: str = ""


class TransactionStats(SQLModel):
    expenses: float = 0.0
    incomes: float = 0.0
    total: float = 0.0
