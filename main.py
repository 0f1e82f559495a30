import logging
from contextlib import asynccontextmanager
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Form, Path, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession

import bookings
from auth import Claims, CredentialVerifier, StaticCredentialVerifier, authenticate, require_claims
from config import Settings, load_settings
from database import create_engine_from_settings, create_session_factory, get_session, init_db
from errors import register_exception_handlers
from schemas import (
    AuthToken,
    BookingRead,
    ErrorResponse,
    LoginRequest,
    RoomCreate,
    RoomRead,
    RoomSchedule,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Room ids are stored as 32-bit integers
RoomId = Annotated[int, Path(ge=1, le=2**31 - 1)]

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


# --- GET /health ---
@router.get("/health")
async def health():
    return {"status": "ok"}


# --- POST /login ---
@router.post("/login", response_model=AuthToken, responses={401: {"model": ErrorResponse}})
async def login(credentials: LoginRequest, request: Request):
    token = authenticate(
        credentials.username,
        credentials.password,
        request.app.state.credential_verifier,
        request.app.state.settings,
    )
    return AuthToken(token=token)


# --- Rooms ---
@router.post(
    "/meeting_rooms",
    response_model=RoomRead,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
)
async def create_room(
    room_data: RoomCreate,
    claims: Claims = Depends(require_claims),
    session: AsyncSession = Depends(get_session),
):
    room = await bookings.create_room(session, room_data.name, room_data.capacity)
    return RoomRead.from_model(room)


@router.get("/meeting_rooms", response_model=List[RoomRead], responses=ERROR_RESPONSES)
async def list_rooms(
    claims: Claims = Depends(require_claims),
    session: AsyncSession = Depends(get_session),
):
    rooms = await bookings.list_rooms(session)
    return [RoomRead.from_model(room) for room in rooms]


@router.get("/meeting_rooms/{room_id}", response_model=RoomRead, responses=ERROR_RESPONSES)
async def get_room(
    room_id: RoomId,
    claims: Claims = Depends(require_claims),
    session: AsyncSession = Depends(get_session),
):
    room = await bookings.get_room(session, room_id)
    return RoomRead.from_model(room)


# --- Bookings ---
@router.get(
    "/meeting_rooms/{room_id}/bookings",
    response_model=RoomSchedule,
    responses=ERROR_RESPONSES,
)
async def get_room_schedule(
    room_id: RoomId,
    claims: Claims = Depends(require_claims),
    session: AsyncSession = Depends(get_session),
):
    room = await bookings.get_room(session, room_id)
    room_bookings = await bookings.list_bookings(session, room_id)
    return RoomSchedule(
        room=RoomRead.from_model(room),
        bookings=[BookingRead.from_model(b) for b in room_bookings],
    )


@router.post(
    "/meeting_rooms/{room_id}/bookings",
    response_model=BookingRead,
    responses=ERROR_RESPONSES,
)
async def book_room(
    room_id: RoomId,
    start: Optional[str] = Form(default=None),
    end: Optional[str] = Form(default=None),
    claims: Claims = Depends(require_claims),
    session: AsyncSession = Depends(get_session),
):
    start_time, end_time = bookings.parse_interval(start, end)
    booking = await bookings.create_booking(session, room_id, start_time, end_time, claims)
    return BookingRead.from_model(booking)


def create_app(
    settings: Optional[Settings] = None,
    credential_verifier: Optional[CredentialVerifier] = None,
) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = create_engine_from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await init_db(engine)
        logger.info("Database schema ready")
        yield
        await engine.dispose()

    app = FastAPI(title="Meeting Room Booking System", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.credential_verifier = credential_verifier or StaticCredentialVerifier(
        settings.admin_username, settings.admin_password
    )

    register_exception_handlers(app)
    app.include_router(router)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app
