"""Availability checking and booking admission.

A booking ``B`` conflicts with a requested interval ``[start, end)`` when
``B.start <= end and B.end >= start``. Intervals that only touch at a boundary
count as conflicting.

Admission runs the room lookup, the availability check and the insert in one
transaction that starts by locking the room row (on SQLite the transaction
holds the database write lock from its first statement), so two requests for
the same room cannot both pass the check before either has written.
"""
import logging
import re
import uuid
from datetime import datetime
from typing import List, Optional

from sqlmodel import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth import Claims
from errors import BadRequest, Conflict, InternalFailure, NotFound
from models import Booking, MeetingRoom, as_utc

logger = logging.getLogger(__name__)


RFC3339 = re.compile(
    r"(\d{4}-\d{2}-\d{2})[Tt](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})",
    re.ASCII,
)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp; returns None when it is missing or invalid."""
    if not value:
        return None
    match = RFC3339.fullmatch(value.strip())
    if match is None:
        return None

    date, clock, fraction, offset = match.groups()
    if fraction:
        # datetime keeps microseconds only
        clock = f"{clock}.{fraction[:6].ljust(6, '0')}"
    if offset in ("Z", "z"):
        offset = "+00:00"
    try:
        parsed = datetime.fromisoformat(f"{date}T{clock}{offset}")
    except ValueError:
        return None
    return as_utc(parsed)


def parse_interval(start: Optional[str], end: Optional[str]) -> tuple[datetime, datetime]:
    start_time = parse_timestamp(start)
    if start_time is None:
        raise BadRequest("invalid start time")

    end_time = parse_timestamp(end)
    if end_time is None:
        raise BadRequest("invalid end time")

    if end_time <= start_time:
        raise BadRequest("end time must be after start time")

    return start_time, end_time


async def find_conflicts(
    session: AsyncSession, room_id: int, start: datetime, end: datetime
) -> List[Booking]:
    statement = select(Booking).where(
        Booking.room_id == room_id,
        Booking.start <= as_utc(end),
        Booking.end >= as_utc(start),
    )
    result = await session.execute(statement)
    return list(result.scalars().all())


async def is_available(
    session: AsyncSession, room_id: int, start: datetime, end: datetime
) -> bool:
    return not await find_conflicts(session, room_id, start, end)


async def get_room(
    session: AsyncSession, room_id: int, *, for_update: bool = False
) -> MeetingRoom:
    statement = select(MeetingRoom).where(MeetingRoom.id == room_id)
    if for_update:
        statement = statement.with_for_update()
    result = await session.execute(statement)
    room = result.scalars().first()
    if room is None:
        raise NotFound("meeting room not found")
    return room


async def create_booking(
    session: AsyncSession,
    room_id: int,
    start: datetime,
    end: datetime,
    claims: Claims,
) -> Booking:
    try:
        await get_room(session, room_id, for_update=True)

        if not await is_available(session, room_id, start, end):
            logger.info(f"BOOKING CONFLICT | room_id={room_id} | start={start} | end={end}")
            raise Conflict("room not available")

        booking = Booking(
            id=str(uuid.uuid4()),
            start=as_utc(start),
            end=as_utc(end),
            room_id=room_id,
            created_by=claims.username,
        )
        session.add(booking)
        await session.commit()
        await session.refresh(booking)
    except SQLAlchemyError:
        await session.rollback()
        logger.exception(f"Failed to create booking for room {room_id}")
        raise InternalFailure("internal server error")
    except (NotFound, Conflict):
        await session.rollback()
        raise

    logger.info(
        f"BOOKING CREATED | id={booking.id} | room_id={room_id} | created_by={booking.created_by}"
    )
    return booking


async def list_bookings(session: AsyncSession, room_id: int) -> List[Booking]:
    statement = select(Booking).where(Booking.room_id == room_id).order_by(Booking.start)
    result = await session.execute(statement)
    return list(result.scalars().all())


async def create_room(session: AsyncSession, name: str, capacity: int) -> MeetingRoom:
    room = MeetingRoom(name=name, capacity=capacity)
    try:
        session.add(room)
        await session.commit()
        await session.refresh(room)
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to create meeting room")
        raise InternalFailure("internal server error")

    logger.info(f"ROOM CREATED | id={room.id} | name={room.name}")
    return room


async def list_rooms(session: AsyncSession) -> List[MeetingRoom]:
    result = await session.execute(select(MeetingRoom).order_by(MeetingRoom.id))
    return list(result.scalars().all())
