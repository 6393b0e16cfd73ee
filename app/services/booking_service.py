import logging
from datetime import UTC, date, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import upsert_insert
from app.core.errors import (
    BadSlotShapeError,
    BookingError,
    CutoffNotReachedError,
    MissingFieldsError,
    NotRoundHourError,
    QuotaExceededError,
    RoomConflictError,
)
from app.models.booking import Booking, BookingPublic, BookingStatus
from app.models.room import Room
from app.models.user import User
from app.services.room_service import get_room
from app.services.slot_engine import (
    BookingPolicy,
    BookingRequest,
    Reject,
    RejectReason,
    day_bounds,
    local_day,
    missing_fields,
    requested_interval,
    validate_booking,
)
from app.services.slot_service import (
    from_naive_utc,
    get_room_bookings_overlapping,
    get_user_bookings_between,
    to_naive_utc,
)
from app.services.user_service import ensure_user

logger = logging.getLogger(__name__)

_REJECTION_ERRORS: dict[RejectReason, type[BookingError]] = {
    RejectReason.MISSING_FIELDS: MissingFieldsError,
    RejectReason.CUTOFF_NOT_REACHED: CutoffNotReachedError,
    RejectReason.BAD_SLOT_SHAPE: BadSlotShapeError,
    RejectReason.NOT_ROUND_HOUR: NotRoundHourError,
    RejectReason.QUOTA_EXCEEDED: QuotaExceededError,
    RejectReason.ROOM_CONFLICT: RoomConflictError,
}


def rejection_error(reject: Reject) -> BookingError:
    return _REJECTION_ERRORS[reject.reason](reject.message)


async def _insert_booking(
    session: AsyncSession, request: BookingRequest, start: datetime, end: datetime
) -> int | None:
    """Insert guarded by uq_bookings_room_start; None when another writer got the slot first."""
    stmt = (
        upsert_insert(session, Booking)
        .values(
            room_id=request.room_id,
            user_id=request.user_id,
            start_time=to_naive_utc(start),
            end_time=to_naive_utc(end),
            purpose=request.purpose,
            status=BookingStatus.CONFIRMED.value,
            created_at=datetime.now(UTC).replace(tzinfo=None),
        )
        .on_conflict_do_nothing(index_elements=["room_id", "start_time"])
        .returning(Booking.id)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_booking(
    session: AsyncSession, request: BookingRequest, now: datetime, policy: BookingPolicy
) -> Booking:
    """Admit and persist a booking, or raise the BookingError for the first failing rule."""
    missing = missing_fields(request)
    if missing:
        raise MissingFieldsError(f"Missing required fields: {', '.join(missing)}")
    await get_room(session, request.room_id)
    await ensure_user(session, request.user_id)

    start, end = requested_interval(request, policy)
    day_start, day_end = day_bounds(local_day(start, policy), policy)
    user_bookings = await get_user_bookings_between(session, request.user_id, day_start, day_end)
    room_bookings = await get_room_bookings_overlapping(session, request.room_id, start, end)

    decision = validate_booking(request, now, user_bookings, room_bookings, policy)
    if isinstance(decision, Reject):
        logger.info(
            "Booking rejected (%s): user=%s room=%s start=%s",
            decision.reason, request.user_id, request.room_id, start.isoformat(),
        )
        raise rejection_error(decision)

    booking_id = await _insert_booking(session, request, decision.start_time, decision.end_time)
    if booking_id is None:
        logger.warning(
            "Booking lost a concurrent write: room=%s start=%s", request.room_id, start.isoformat()
        )
        raise RoomConflictError()
    booking = await session.get(Booking, booking_id)
    logger.info(
        "Booking %s confirmed: user=%s room=%s start=%s",
        booking_id, request.user_id, request.room_id, start.isoformat(),
    )
    return booking


async def list_bookings(
    session: AsyncSession,
    policy: BookingPolicy,
    user_id: str | None = None,
    room_id: str | None = None,
    on_date: date | None = None,
) -> list[tuple[Booking, Room, User]]:
    q = (
        select(Booking, Room, User)
        .join(Room, Room.id == Booking.room_id)
        .join(User, User.id == Booking.user_id)
        .order_by(Booking.start_time)
    )
    if user_id:
        q = q.where(Booking.user_id == user_id)
    if room_id:
        q = q.where(Booking.room_id == room_id)
    if on_date:
        day_start, day_end = day_bounds(on_date, policy)
        q = q.where(
            Booking.start_time >= to_naive_utc(day_start),
            Booking.start_time < to_naive_utc(day_end),
        )
    result = await session.execute(q)
    return [(b, r, u) for b, r, u in result.all()]


def booking_to_public(b: Booking, room: Room | None = None, user: User | None = None) -> BookingPublic:
    """Public shape; stored naive UTC instants go out timezone-aware."""
    return BookingPublic(
        id=b.id,
        room_id=b.room_id,
        user_id=b.user_id,
        start_time=from_naive_utc(b.start_time),
        end_time=from_naive_utc(b.end_time),
        purpose=b.purpose,
        status=BookingStatus(b.status),
        created_at=from_naive_utc(b.created_at),
        room_name=room.name if room else None,
        user_name=user.name if user else None,
    )
