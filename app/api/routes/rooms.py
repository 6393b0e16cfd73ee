from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_session, with_store_timeout
from app.models.room import Room, RoomCreate, RoomPublic
from app.services.room_service import create_room, get_room, list_rooms

router = APIRouter(prefix="/rooms", tags=["rooms"])


def _to_public(room: Room) -> RoomPublic:
    return RoomPublic(
        id=room.id,
        name=room.name,
        description=room.description,
        capacity=room.capacity,
    )


@router.get("", response_model=list[RoomPublic])
async def get_rooms(session: AsyncSession = Depends(get_session)) -> list[RoomPublic]:
    rooms = await with_store_timeout(list_rooms(session))
    return [_to_public(r) for r in rooms]


@router.get("/{room_id}", response_model=RoomPublic)
async def get_room_by_id(room_id: str, session: AsyncSession = Depends(get_session)) -> RoomPublic:
    room = await with_store_timeout(get_room(session, room_id))
    return _to_public(room)


@router.post("", response_model=RoomPublic, status_code=status.HTTP_201_CREATED)
async def add_room(body: RoomCreate, session: AsyncSession = Depends(get_session)) -> RoomPublic:
    room = await with_store_timeout(create_room(session, body))
    return _to_public(room)
