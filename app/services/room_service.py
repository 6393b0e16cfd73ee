from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import RoomNotFoundError
from app.models.room import Room, RoomCreate


async def list_rooms(session: AsyncSession) -> list[Room]:
    result = await session.execute(select(Room).order_by(Room.name))
    return list(result.scalars().all())


async def get_room(session: AsyncSession, room_id: str) -> Room:
    result = await session.execute(select(Room).where(Room.id == room_id))
    room = result.scalar_one_or_none()
    if room is None:
        raise RoomNotFoundError(f"Room {room_id} not found")
    return room


async def create_room(session: AsyncSession, data: RoomCreate) -> Room:
    room = Room(name=data.name, description=data.description, capacity=data.capacity)
    session.add(room)
    await session.flush()
    await session.refresh(room)
    return room
