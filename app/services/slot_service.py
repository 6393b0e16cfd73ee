from dataclasses import dataclass
from datetime import UTC, date, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import CutoffNotReachedError
from app.models.booking import Booking, BookingStatus
from app.services.slot_engine import (
    BookedInterval,
    BookingPolicy,
    Slot,
    can_book_for_date,
    count_user_bookings_on,
    daily_quota,
    day_bounds,
    enumerate_slots,
    operating_window,
)


def to_naive_utc(dt: datetime) -> datetime:
    """Convert to naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    if dt.tzinfo is not None:
        return dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def from_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def to_interval(b: Booking) -> BookedInterval:
    return BookedInterval(
        id=b.id,
        room_id=b.room_id,
        user_id=b.user_id,
        start_time=from_naive_utc(b.start_time),
        end_time=from_naive_utc(b.end_time),
        status=b.status,
    )


async def get_room_bookings_overlapping(
    session: AsyncSession, room_id: str, start: datetime, end: datetime
) -> list[BookedInterval]:
    """Confirmed bookings of the room whose interval touches [start, end]."""
    result = await session.execute(
        select(Booking)
        .where(
            Booking.room_id == room_id,
            Booking.status == BookingStatus.CONFIRMED.value,
            Booking.start_time <= to_naive_utc(end),
            Booking.end_time >= to_naive_utc(start),
        )
        .order_by(Booking.start_time)
    )
    return [to_interval(b) for b in result.scalars().all()]


async def get_user_bookings_between(
    session: AsyncSession, user_id: str, start_inclusive: datetime, end_exclusive: datetime
) -> list[BookedInterval]:
    result = await session.execute(
        select(Booking)
        .where(
            Booking.user_id == user_id,
            Booking.status == BookingStatus.CONFIRMED.value,
            Booking.start_time >= to_naive_utc(start_inclusive),
            Booking.start_time < to_naive_utc(end_exclusive),
        )
        .order_by(Booking.start_time)
    )
    return [to_interval(b) for b in result.scalars().all()]


@dataclass(frozen=True)
class Availability:
    slots: list[Slot]
    remaining_quota: int | None = None


async def get_available_slots_for_date(
    session: AsyncSession,
    room_id: str,
    d: date,
    now: datetime,
    policy: BookingPolicy,
    user_id: str | None = None,
) -> Availability:
    """Bookable slots for the room's operating day starting on ``d``.

    When ``user_id`` is given, also reports how many more bookings that user may
    make on ``d``.
    """
    if not can_book_for_date(d, now, policy):
        raise CutoffNotReachedError(
            f"Bookings can only be made after {policy.cutoff_hour}:00 the previous day"
        )
    window_start, window_end = operating_window(d, policy)
    booked = await get_room_bookings_overlapping(session, room_id, window_start, window_end)
    slots = enumerate_slots(room_id, d, booked, policy)

    remaining = None
    if user_id:
        day_start, day_end = day_bounds(d, policy)
        mine = await get_user_bookings_between(session, user_id, day_start, day_end)
        remaining = max(0, daily_quota(d, policy) - count_user_bookings_on(d, mine, policy))
    return Availability(slots=slots, remaining_quota=remaining)
