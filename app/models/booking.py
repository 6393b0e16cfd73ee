from datetime import datetime
from enum import StrEnum

from sqlalchemy import Column, DateTime, String, UniqueConstraint
from sqlmodel import Field, SQLModel

from app.models.room import _utc_naive_now


class BookingStatus(StrEnum):
    # Only CONFIRMED is reachable; admission goes straight to it.
    CONFIRMED = "confirmed"


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"
    # Every admitted booking is an hour-aligned 59m59s slot, so two bookings of a
    # room overlap exactly when they share a start instant.
    __table_args__ = (UniqueConstraint("room_id", "start_time", name="uq_bookings_room_start"),)

    id: int | None = Field(default=None, primary_key=True)
    room_id: str = Field(foreign_key="rooms.id", ondelete="CASCADE", index=True)
    user_id: str = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    # Naive UTC, declared explicitly as TIMESTAMP WITHOUT TIME ZONE
    start_time: datetime = Field(sa_column=Column(DateTime(), nullable=False, index=True))
    end_time: datetime = Field(sa_column=Column(DateTime(), nullable=False))
    purpose: str | None = None
    status: BookingStatus = Field(
        default=BookingStatus.CONFIRMED,
        sa_column=Column(String(16), nullable=False, default=BookingStatus.CONFIRMED.value),
    )
    created_at: datetime = Field(
        default_factory=_utc_naive_now, sa_column=Column(DateTime(), nullable=False)
    )


class BookingPublic(SQLModel):
    id: int
    room_id: str
    user_id: str
    start_time: datetime
    end_time: datetime
    purpose: str | None = None
    status: BookingStatus
    created_at: datetime
    room_name: str | None = None
    user_name: str | None = None
