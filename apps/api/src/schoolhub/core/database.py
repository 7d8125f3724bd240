"""
Database Configuration

Async SQLAlchemy engine and session factory. The engine is created once at
startup and the session factory is handed to the service container; request
handlers obtain a session through the get_db dependency.
"""

from collections.abc import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from schoolhub.core.config import Settings


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


def create_engine(settings: Settings) -> AsyncEngine:
    """
    Create the async engine.

    Every statement runs under asyncpg's command_timeout so that a stalled
    database call cannot hold a request open forever.
    """
    return create_async_engine(
        settings.database_url,
        echo=False,
        pool_pre_ping=True,
        connect_args={"command_timeout": settings.database_command_timeout},
    )


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory bound to an engine."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency yielding a database session.

    Services commit their own unit of work; anything left uncommitted when
    the request fails is rolled back here.
    """
    session_maker = request.app.state.services.session_maker
    async with session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
