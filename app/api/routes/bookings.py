from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_now, get_policy, get_session, with_store_timeout
from app.api.schemas.booking import BookRoomRequest, ErrorResponse
from app.models.booking import BookingPublic
from app.services.booking_service import booking_to_public, create_booking, list_bookings
from app.services.slot_engine import BookingPolicy, BookingRequest

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post(
    "",
    response_model=BookingPublic,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def book_room(
    body: BookRoomRequest,
    session: AsyncSession = Depends(get_session),
    now: datetime = Depends(get_now),
    policy: BookingPolicy = Depends(get_policy),
) -> BookingPublic:
    request = BookingRequest(**body.model_dump())
    booking = await with_store_timeout(create_booking(session, request, now, policy))
    return booking_to_public(booking)


@router.get("", response_model=list[BookingPublic])
async def get_bookings(
    user_id: str | None = Query(None),
    room_id: str | None = Query(None),
    date_param: date | None = Query(None, alias="date"),
    session: AsyncSession = Depends(get_session),
    policy: BookingPolicy = Depends(get_policy),
) -> list[BookingPublic]:
    rows = await with_store_timeout(
        list_bookings(session, policy, user_id=user_id, room_id=room_id, on_date=date_param)
    )
    return [booking_to_public(b, room, user) for b, room, user in rows]
