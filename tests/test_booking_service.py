import asyncio
from datetime import UTC, date, datetime, timedelta

import pytest
from sqlalchemy import DateTime, func, select

from app.core.errors import (
    BadSlotShapeError,
    CutoffNotReachedError,
    MissingFieldsError,
    QuotaExceededError,
    RoomConflictError,
    RoomNotFoundError,
)
from app.models.booking import Booking, BookingStatus
from app.models.room import Room
from app.models.user import User
from app.services import booking_service
from app.services.booking_service import create_booking, list_bookings
from app.services.slot_engine import BookingRequest
from app.services.slot_service import get_available_slots_for_date
from app.services.user_service import ensure_user

MONDAY = date(2024, 6, 10)
SATURDAY = date(2024, 6, 15)
OPENS_FOR_MONDAY = datetime(2024, 6, 9, 22, 0, tzinfo=UTC)
OPENS_FOR_SATURDAY = datetime(2024, 6, 14, 22, 0, tzinfo=UTC)


async def _count(session_maker, model) -> int:
    async with session_maker() as s:
        return (await s.execute(select(func.count()).select_from(model))).scalar_one()


async def test_monday_scenario(room, book):
    first = await book(OPENS_FOR_MONDAY, "alice", room.id, MONDAY, 9)
    assert first.status == BookingStatus.CONFIRMED
    assert first.start_time == datetime(2024, 6, 10, 9, 0)
    assert first.end_time == datetime(2024, 6, 10, 9, 59, 59)

    with pytest.raises(RoomConflictError):
        await book(OPENS_FOR_MONDAY, "bob", room.id, MONDAY, 9)

    with pytest.raises(QuotaExceededError):
        await book(OPENS_FOR_MONDAY, "alice", room.id, MONDAY, 14)


async def test_saturday_allows_two_bookings(room, book):
    await book(OPENS_FOR_SATURDAY, "alice", room.id, SATURDAY, 10)
    await book(OPENS_FOR_SATURDAY, "alice", room.id, SATURDAY, 18)
    with pytest.raises(QuotaExceededError):
        await book(OPENS_FOR_SATURDAY, "alice", room.id, SATURDAY, 20)


async def test_cutoff_boundary(room, book):
    with pytest.raises(CutoffNotReachedError):
        await book(OPENS_FOR_MONDAY - timedelta(minutes=1), "alice", room.id, MONDAY, 9)
    await book(OPENS_FOR_MONDAY, "alice", room.id, MONDAY, 9)


async def test_bad_shape_is_rejected(room, book, session_maker):
    with pytest.raises(BadSlotShapeError):
        await book(OPENS_FOR_MONDAY, "alice", room.id, MONDAY, 9, end_minute=45)
    assert await _count(session_maker, Booking) == 0


async def test_missing_fields_and_unknown_room(session, clock, policy):
    with pytest.raises(MissingFieldsError):
        await create_booking(session, BookingRequest(user_id="alice"), clock.now, policy)
    request = BookingRequest(
        user_id="alice", room_id="nope", date=MONDAY,
        start_hour=9, start_minute=0, end_hour=9, end_minute=59,
    )
    with pytest.raises(RoomNotFoundError):
        await create_booking(session, request, clock.now, policy)


async def test_unknown_user_is_provisioned(room, book, session_maker):
    await book(OPENS_FOR_MONDAY, "ghost", room.id, MONDAY, 9)
    async with session_maker() as s:
        user = (await s.execute(select(User).where(User.id == "ghost"))).scalar_one()
    assert user.name == "Mock User"
    assert user.email == "user-ghost@example.com"


async def test_ensure_user_is_idempotent(session_maker):
    async with session_maker() as s:
        first = await ensure_user(s, "ghost")
        await s.commit()
    async with session_maker() as s:
        again = await ensure_user(s, "ghost")
        await s.commit()
    assert first.id == again.id == "ghost"
    assert await _count(session_maker, User) == 1


async def test_concurrent_writers_cannot_double_book(room, book, session_maker, monkeypatch):
    """Two requests that both passed validation: only the first insert wins."""
    await book(OPENS_FOR_MONDAY, "alice", room.id, MONDAY, 9)

    # The second request reads the room before the first one committed.
    async def stale_room_read(*args, **kwargs):
        return []

    monkeypatch.setattr(booking_service, "get_room_bookings_overlapping", stale_room_read)
    with pytest.raises(RoomConflictError):
        await book(OPENS_FOR_MONDAY, "bob", room.id, MONDAY, 9)

    async with session_maker() as s:
        rows = (await s.execute(select(Booking).where(Booking.room_id == room.id))).scalars().all()
    assert [b.user_id for b in rows] == ["alice"]


async def test_available_slots_skip_booked_hours(room, book, session, policy):
    await book(OPENS_FOR_MONDAY, "alice", room.id, MONDAY, 8)
    availability = await get_available_slots_for_date(
        session, room.id, MONDAY, OPENS_FOR_MONDAY, policy, user_id="alice"
    )
    hours = [s.start_hour for s in availability.slots]
    assert hours[:3] == [0, 1, 9]
    assert 8 not in hours
    assert len(hours) == 17
    assert availability.remaining_quota == 0


async def test_available_slots_report_quota_for_fresh_user(room, session, policy):
    availability = await get_available_slots_for_date(
        session, room.id, SATURDAY, OPENS_FOR_SATURDAY, policy, user_id="bob"
    )
    assert len(availability.slots) == 18
    assert availability.remaining_quota == 2


async def test_available_slots_before_cutoff(room, session, policy):
    with pytest.raises(CutoffNotReachedError):
        await get_available_slots_for_date(
            session, room.id, MONDAY, OPENS_FOR_MONDAY - timedelta(seconds=1), policy
        )


async def test_list_bookings_filters_and_orders(room, book, session, policy):
    await book(OPENS_FOR_SATURDAY, "bob", room.id, SATURDAY, 18)
    await book(OPENS_FOR_SATURDAY, "alice", room.id, SATURDAY, 10)
    await book(OPENS_FOR_MONDAY, "alice", room.id, MONDAY, 9)

    rows = await list_bookings(session, policy, on_date=SATURDAY)
    assert [(b.user_id, b.start_time.hour) for b, _, _ in rows] == [("alice", 10), ("bob", 18)]
    assert rows[0][1].name == "Focus Room"

    alice = await list_bookings(session, policy, user_id="alice")
    assert [b.start_time.date() for b, _, _ in alice] == [MONDAY, SATURDAY]

    assert await list_bookings(session, policy, room_id="other") == []


@pytest.mark.parametrize(
    "column",
    [
        Booking.__table__.c.start_time,
        Booking.__table__.c.end_time,
        Booking.__table__.c.created_at,
        Room.__table__.c.created_at,
        User.__table__.c.created_at,
    ],
)
def test_timestamps_are_stored_without_timezone(column):
    assert type(column.type) is DateTime
    assert column.type.timezone is False


def test_booking_foreign_keys_cascade():
    assert {fk.parent.name: fk.ondelete for fk in Booking.__table__.foreign_keys} == {
        "room_id": "CASCADE",
        "user_id": "CASCADE",
    }


async def _outcomes(book, calls) -> list[str]:
    results = await asyncio.gather(*(book(*args) for args in calls), return_exceptions=True)
    return sorted("ok" if isinstance(r, Booking) else type(r).__name__ for r in results)


async def test_parallel_requests_from_one_user_respect_quota(room, book, session_maker):
    calls = [(OPENS_FOR_MONDAY, "alice", room.id, MONDAY, hour) for hour in (9, 11, 14, 16)]
    outcomes = await _outcomes(book, calls)
    assert outcomes == ["QuotaExceededError"] * 3 + ["ok"]
    assert await _count(session_maker, Booking) == 1


async def test_parallel_requests_for_one_slot_book_it_once(room, book, session_maker):
    calls = [(OPENS_FOR_MONDAY, user, room.id, MONDAY, 9) for user in ("alice", "bob", "carol", "dave")]
    outcomes = await _outcomes(book, calls)
    assert outcomes == ["RoomConflictError"] * 3 + ["ok"]
    assert await _count(session_maker, Booking) == 1
