import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import CheckConstraint, Column, DateTime
from sqlmodel import Field, Relationship, SQLModel


def as_utc(value: datetime) -> datetime:
    """Normalise to UTC; naive values (SQLite drops offsets) are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class MeetingRoom(SQLModel, table=True):
    __tablename__ = "rooms"
    __table_args__ = (
        CheckConstraint("capacity > 0", name="check_room_capacity_positive"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    capacity: int

    bookings: List["Booking"] = Relationship(back_populates="room")


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    start: datetime = Field(sa_column=Column("start", DateTime(timezone=True), nullable=False))
    end: datetime = Field(sa_column=Column("end", DateTime(timezone=True), nullable=False))
    room_id: int = Field(foreign_key="rooms.id", index=True)
    created_by: str

    room: Optional[MeetingRoom] = Relationship(back_populates="bookings")
