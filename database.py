from typing import AsyncIterator

from fastapi import Request
from sqlmodel import SQLModel
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from config import Settings

# Seconds a SQLite connection waits for another writer's lock
SQLITE_BUSY_TIMEOUT = 30


def _take_write_lock_on_begin(engine: AsyncEngine) -> None:
    """Start every SQLite transaction with BEGIN IMMEDIATE.

    A transaction then holds the database write lock from its first read,
    which stands in for the room row lock SQLite cannot take.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    is_sqlite = settings.database_url.startswith("sqlite")
    connect_args = {"timeout": SQLITE_BUSY_TIMEOUT} if is_sqlite else {}

    engine = create_async_engine(
        settings.database_url, echo=settings.sql_echo, future=True, connect_args=connect_args
    )
    if is_sqlite:
        _take_write_lock_on_begin(engine)
    return engine


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    # Table classes must be registered on the metadata before create_all
    import models  # noqa: F401

    async with engine.begin() as conn:
        # This creates the tables if they don't exist
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    async_session = request.app.state.session_factory
    async with async_session() as session:
        yield session
