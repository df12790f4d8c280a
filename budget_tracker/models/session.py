import uuid
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field


class UserSession(SQLModel, table=True):
    __tablename__ = "sessions"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    # 16 random bytes, hex-encoded
    token: str = Field(index=True, unique=True, min_length=32, max_length=32)

    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)

    created_at: datetime = Field(sa_type=DateTime(timezone=True))
    expire_at: datetime = Field(sa_type=DateTime(timezone=True))
