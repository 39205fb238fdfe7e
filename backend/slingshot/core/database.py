"""
Database connection and session management.

asyncpg connections belong to the event loop that opened them. Worker tasks
each run on their own loop (see ``core.async_helpers``), so engines are built
per task instead of shared through a module-level pool.
"""
from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from slingshot.core.config import settings


def create_engine() -> AsyncEngine:
    """
    Build an engine for a single event loop.

    NullPool closes every connection when it is released, so nothing
    outlives the task that opened it.
    """
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        poolclass=NullPool,
        connect_args={
            "command_timeout": 60,
            "server_settings": {
                "statement_timeout": "60000",  # milliseconds
            },
        },
    )


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


class Base(DeclarativeBase):
    """Base class for all database models."""
    metadata = MetaData(schema=settings.DB_SCHEMA)
