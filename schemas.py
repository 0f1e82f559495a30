from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from models import Booking, MeetingRoom, as_utc


class LoginRequest(BaseModel):
    username: str
    password: str


class AuthToken(BaseModel):
    token: str


class ErrorResponse(BaseModel):
    error: str


class RoomCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    capacity: int = Field(gt=0)


class RoomRead(BaseModel):
    id: int
    name: str
    capacity: int

    @classmethod
    def from_model(cls, room: MeetingRoom) -> "RoomRead":
        return cls(id=room.id, name=room.name, capacity=room.capacity)


class BookingRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    start: datetime
    end: datetime
    room_id: int = Field(alias="roomID")
    created_by: str = Field(alias="createdBy")

    @field_serializer("start", "end")
    def serialize_time(self, value: datetime) -> str:
        return as_utc(value).isoformat().replace("+00:00", "Z")

    @classmethod
    def from_model(cls, booking: Booking) -> "BookingRead":
        return cls(
            id=booking.id,
            start=booking.start,
            end=booking.end,
            room_id=booking.room_id,
            created_by=booking.created_by,
        )


class RoomSchedule(BaseModel):
    room: RoomRead
    bookings: List[BookingRead]
