"""Slot enumeration and booking admission rules.

Everything here is pure: callers load bookings from the store and pass them in,
along with the current time. Instants are timezone-aware; calendar days, weekends
and the booking cutoff are all computed in ``BookingPolicy.tz``.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo
from enum import StrEnum
from typing import Protocol
from zoneinfo import ZoneInfo

from app.core.config import Settings
from app.models.booking import BookingStatus

SATURDAY = 5
SUNDAY = 6


@dataclass(frozen=True)
class BookingPolicy:
    tz: tzinfo = field(default_factory=lambda: ZoneInfo("UTC"))
    operating_start_hour: int = 8
    operating_end_hour: int = 26
    cutoff_hour: int = 22
    weekday_quota: int = 1
    weekend_quota: int = 2
    slot_length: timedelta = timedelta(minutes=59, seconds=59)
    slot_tolerance: timedelta = timedelta(seconds=1)

    @classmethod
    def from_settings(cls, s: Settings) -> BookingPolicy:
        return cls(
            tz=ZoneInfo(s.booking_timezone),
            operating_start_hour=s.operating_start_hour,
            operating_end_hour=s.operating_end_hour,
            cutoff_hour=s.booking_cutoff_hour,
            weekday_quota=s.weekday_booking_quota,
            weekend_quota=s.weekend_booking_quota,
            slot_length=timedelta(seconds=s.slot_length_seconds),
            slot_tolerance=timedelta(seconds=s.slot_tolerance_seconds),
        )


class BookingLike(Protocol):
    """Anything with the booking fields the rules look at (e.g. ``Booking`` rows)."""

    id: int | None
    room_id: str
    start_time: datetime
    end_time: datetime
    status: str


@dataclass(frozen=True)
class BookedInterval:
    """A stored booking with timezone-aware instants."""

    id: int | None
    room_id: str
    user_id: str
    start_time: datetime
    end_time: datetime
    status: str = BookingStatus.CONFIRMED


@dataclass(frozen=True)
class Slot:
    start_time: datetime
    end_time: datetime
    available: bool = True

    @property
    def start_hour(self) -> int:
        return self.start_time.hour

    @property
    def formatted_start_time(self) -> str:
        return f"{self.start_hour:02d}:00"

    @property
    def formatted_end_time(self) -> str:
        return f"{self.start_hour:02d}:59"


@dataclass(frozen=True)
class BookingRequest:
    user_id: str | None = None
    room_id: str | None = None
    date: date | None = None
    start_hour: int | None = None
    start_minute: int | None = None
    end_hour: int | None = None
    end_minute: int | None = None
    purpose: str | None = None
    exclude_booking_id: int | None = None


class RejectReason(StrEnum):
    MISSING_FIELDS = "missing_fields"
    CUTOFF_NOT_REACHED = "cutoff_not_reached"
    BAD_SLOT_SHAPE = "bad_slot_shape"
    NOT_ROUND_HOUR = "not_round_hour"
    QUOTA_EXCEEDED = "quota_exceeded"
    ROOM_CONFLICT = "room_conflict"


@dataclass(frozen=True)
class Admit:
    start_time: datetime
    end_time: datetime


@dataclass(frozen=True)
class Reject:
    reason: RejectReason
    message: str


Decision = Admit | Reject


def overlaps(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    """Three-way overlap test shared by enumeration and conflict checks.

    The boundaries are deliberately asymmetric: ``[start, end]`` overlaps if it
    starts inside ``[other_start, other_end)``, ends inside ``(other_start, other_end]``
    or fully contains the other interval.
    """
    return (
        (other_start <= start < other_end)
        or (other_start < end <= other_end)
        or (start <= other_start and end >= other_end)
    )


def _at_hour(day: date, hour: int, minute: int, second: int, tz: tzinfo) -> datetime:
    # Hour indices past 23 belong to the following calendar date.
    day = day + timedelta(days=hour // 24)
    return datetime.combine(day, time(hour % 24, minute, second), tzinfo=tz)


def local_day(instant: datetime, policy: BookingPolicy) -> date:
    return instant.astimezone(policy.tz).date()


def day_bounds(day: date, policy: BookingPolicy) -> tuple[datetime, datetime]:
    """[00:00 of day, 00:00 of next day) in the reference timezone."""
    start = datetime.combine(day, time(0), tzinfo=policy.tz)
    return start, datetime.combine(day + timedelta(days=1), time(0), tzinfo=policy.tz)


def operating_window(day: date, policy: BookingPolicy) -> tuple[datetime, datetime]:
    """[first slot start, end of operating day) for the operating day starting on ``day``."""
    return (
        _at_hour(day, policy.operating_start_hour, 0, 0, policy.tz),
        _at_hour(day, policy.operating_end_hour, 0, 0, policy.tz),
    )


def booking_opens_at(day: date, policy: BookingPolicy) -> datetime:
    return datetime.combine(day - timedelta(days=1), time(policy.cutoff_hour), tzinfo=policy.tz)


def can_book_for_date(day: date, now: datetime, policy: BookingPolicy) -> bool:
    """True once ``now`` has reached the cutoff hour on the day before ``day``."""
    return now >= booking_opens_at(day, policy)


def is_weekend(day: date) -> bool:
    return day.weekday() in (SATURDAY, SUNDAY)


def daily_quota(day: date, policy: BookingPolicy) -> int:
    return policy.weekend_quota if is_weekend(day) else policy.weekday_quota


def _is_confirmed(booking: BookingLike) -> bool:
    return booking.status == BookingStatus.CONFIRMED


def candidate_slots(day: date, policy: BookingPolicy) -> list[Slot]:
    """All slots of the operating day in hour order, before any filtering."""
    tz = policy.tz
    return [
        Slot(
            start_time=_at_hour(day, hour, 0, 0, tz),
            end_time=_at_hour(day, hour, 59, 59, tz),
        )
        for hour in range(policy.operating_start_hour, policy.operating_end_hour)
    ]


def _slot_sort_key(slot: Slot) -> tuple[int, int]:
    # 00:00 and 01:00 read first, then the rest by hour.
    hour = slot.start_hour
    return (0 if hour in (0, 1) else 1, hour)


def enumerate_slots(
    room_id: str,
    day: date,
    existing_bookings: Iterable[BookingLike],
    policy: BookingPolicy,
) -> list[Slot]:
    """Bookable slots of ``room_id`` on ``day``; taken slots are left out."""
    taken = [
        (b.start_time, b.end_time)
        for b in existing_bookings
        if b.room_id == room_id and _is_confirmed(b)
    ]
    available = [
        slot
        for slot in candidate_slots(day, policy)
        if not any(overlaps(slot.start_time, slot.end_time, s, e) for s, e in taken)
    ]
    return sorted(available, key=_slot_sort_key)


def missing_fields(request: BookingRequest) -> list[str]:
    required = ("user_id", "room_id", "date", "start_hour", "start_minute", "end_hour", "end_minute")
    # Empty ids count as missing; hour/minute 0 does not.
    return [
        name
        for name in required
        if getattr(request, name) is None or getattr(request, name) == ""
    ]


def requested_interval(request: BookingRequest, policy: BookingPolicy) -> tuple[datetime, datetime]:
    """Start at ``start_hour:start_minute:00``, end at ``end_hour:end_minute:59``."""
    start = _at_hour(request.date, request.start_hour, request.start_minute, 0, policy.tz)
    end = _at_hour(request.date, request.end_hour, request.end_minute, 59, policy.tz)
    return start, end


def count_user_bookings_on(
    day: date,
    user_bookings: Iterable[BookingLike],
    policy: BookingPolicy,
    exclude_booking_id: int | None = None,
) -> int:
    return sum(
        1
        for b in user_bookings
        if _is_confirmed(b)
        and b.id != exclude_booking_id
        and local_day(b.start_time, policy) == day
    )


def find_conflict(
    room_id: str,
    start: datetime,
    end: datetime,
    room_bookings: Iterable[BookingLike],
) -> BookingLike | None:
    for b in room_bookings:
        if b.room_id == room_id and _is_confirmed(b) and overlaps(start, end, b.start_time, b.end_time):
            return b
    return None


def validate_booking(
    request: BookingRequest,
    now: datetime,
    user_bookings: Iterable[BookingLike],
    room_bookings: Iterable[BookingLike],
    policy: BookingPolicy,
) -> Decision:
    """Apply the admission rules in order; the first failing rule decides."""
    missing = missing_fields(request)
    if missing:
        return Reject(RejectReason.MISSING_FIELDS, f"Missing required fields: {', '.join(missing)}")

    start, end = requested_interval(request, policy)
    day = local_day(start, policy)

    if not can_book_for_date(day, now, policy):
        return Reject(
            RejectReason.CUTOFF_NOT_REACHED,
            f"Bookings can only be made after {policy.cutoff_hour}:00 the previous day",
        )

    if abs((end - start) - policy.slot_length) > policy.slot_tolerance:
        return Reject(RejectReason.BAD_SLOT_SHAPE, "Booking slots must be exactly 59 minutes and 59 seconds")

    if start.minute != 0 or start.second != 0:
        return Reject(RejectReason.NOT_ROUND_HOUR, "Bookings must start at round hours (e.g., 7:00, 8:00)")

    quota = daily_quota(day, policy)
    held = count_user_bookings_on(day, user_bookings, policy, request.exclude_booking_id)
    if held >= quota:
        if is_weekend(day):
            message = f"You can only book up to {quota} slots on weekends"
        else:
            message = f"You can only book {quota} slot per day on weekdays"
        return Reject(RejectReason.QUOTA_EXCEEDED, message)

    if find_conflict(request.room_id, start, end, room_bookings) is not None:
        return Reject(RejectReason.ROOM_CONFLICT, "Room is already booked for this time")

    return Admit(start_time=start, end_time=end)
