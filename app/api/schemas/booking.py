from datetime import date as Date, datetime

from pydantic import BaseModel, Field


class SlotInfo(BaseModel):
    start_time: datetime
    end_time: datetime
    start_hour: int
    formatted_start_time: str  # HH:00
    formatted_end_time: str  # HH:59


class AvailableSlotsResponse(BaseModel):
    room_id: str
    date: str  # YYYY-MM-DD
    timezone: str
    slots: list[SlotInfo]
    remaining_quota: int | None = None  # only when user_id was given


class BookRoomRequest(BaseModel):
    # Presence is checked by the booking rules so a missing field reports
    # missing_fields rather than a schema error.
    user_id: str | None = None
    room_id: str | None = None
    date: Date | None = None
    start_hour: int | None = Field(default=None, ge=0, le=25)
    start_minute: int | None = Field(default=None, ge=0, le=59)
    end_hour: int | None = Field(default=None, ge=0, le=25)
    end_minute: int | None = Field(default=None, ge=0, le=59)
    purpose: str | None = None
    exclude_booking_id: int | None = None


class ErrorResponse(BaseModel):
    detail: str
    code: str
