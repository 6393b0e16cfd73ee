from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_now, get_policy, get_session, with_store_timeout
from app.api.schemas.booking import AvailableSlotsResponse, SlotInfo
from app.core.config import settings
from app.core.errors import MissingFieldsError
from app.services.room_service import get_room
from app.services.slot_engine import BookingPolicy
from app.services.slot_service import get_available_slots_for_date

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/available", response_model=AvailableSlotsResponse)
async def available_slots(
    room_id: str | None = Query(None),
    date_param: date | None = Query(None, alias="date"),
    user_id: str | None = Query(None),
    session: AsyncSession = Depends(get_session),
    now: datetime = Depends(get_now),
    policy: BookingPolicy = Depends(get_policy),
) -> AvailableSlotsResponse:
    """Bookable slots of a room for the operating day starting on ``date``.

    Slots run 08:00 through 01:00 the next day, after-midnight slots listed first.
    Taken slots are left out.
    """
    if not room_id or date_param is None:
        raise MissingFieldsError("Missing required parameters: room_id and date")
    await with_store_timeout(get_room(session, room_id))
    availability = await with_store_timeout(
        get_available_slots_for_date(session, room_id, date_param, now, policy, user_id=user_id)
    )
    return AvailableSlotsResponse(
        room_id=room_id,
        date=date_param.isoformat(),
        timezone=settings.booking_timezone,
        slots=[
            SlotInfo(
                start_time=s.start_time,
                end_time=s.end_time,
                start_hour=s.start_hour,
                formatted_start_time=s.formatted_start_time,
                formatted_end_time=s.formatted_end_time,
            )
            for s in availability.slots
        ],
        remaining_quota=availability.remaining_quota,
    )
