from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def _new_id() -> str:
    return uuid4().hex


class RoomBase(SQLModel):
    name: str = Field(index=True)
    description: str | None = None
    capacity: int = Field(default=1, ge=1)


class Room(RoomBase, table=True):
    __tablename__ = "rooms"
    id: str = Field(default_factory=_new_id, primary_key=True)
    created_at: datetime = Field(
        default_factory=_utc_naive_now, sa_column=Column(DateTime(), nullable=False)
    )


class RoomCreate(RoomBase):
    pass


class RoomPublic(RoomBase):
    id: str
