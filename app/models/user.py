from datetime import datetime

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel

from app.models.room import _new_id, _utc_naive_now


class UserBase(SQLModel):
    name: str
    email: str = Field(unique=True, index=True)


class User(UserBase, table=True):
    __tablename__ = "users"
    # Client-supplied on first booking, generated otherwise
    id: str = Field(default_factory=_new_id, primary_key=True)
    created_at: datetime = Field(
        default_factory=_utc_naive_now, sa_column=Column(DateTime(), nullable=False)
    )


class UserCreate(SQLModel):
    name: str | None = None


class UserPublic(SQLModel):
    id: str
    name: str
    email: str
    created_at: datetime
