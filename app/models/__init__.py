from app.models.room import Room, RoomCreate, RoomPublic
from app.models.user import User, UserCreate, UserPublic
from app.models.booking import Booking, BookingPublic, BookingStatus

__all__ = [
    "Room",
    "RoomCreate",
    "RoomPublic",
    "User",
    "UserCreate",
    "UserPublic",
    "Booking",
    "BookingPublic",
    "BookingStatus",
]
