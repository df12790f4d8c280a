import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from ..core.clock import utcnow


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    username: str = Field(index=True, unique=True, max_length=30)
    full_name: str = Field(max_length=255)
    # Not unique: an unconfirmed address may be registered again by someone else.
    email: str = Field(index=True, max_length=255)
    pending_email: Optional[str] = Field(default=None, max_length=255)
    hashed_password: str

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class NewUser(SQLModel):
    username: str = ""
    full_name: str = ""
    email: str = ""
    password: str = ""


class Credentials(SQLModel):
    username: str = ""
    password: str = ""


class DeleteAccountRequest(SQLModel):
    password: str = ""
    reason: str = ""


class AccountInfo(SQLModel):
    username: str
    full_name: str
    email: str
    email_confirmed: bool
    joined_at: datetime
