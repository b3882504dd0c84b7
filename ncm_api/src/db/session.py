from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import Settings


# PUBLIC_INTERFACE
def build_engine(settings: Settings) -> AsyncEngine:
    """
    Create the process-wide AsyncEngine (and its connection pool).

    The engine is owned by the application for its whole lifetime; callers
    store it on app.state and dispose it on shutdown.
    """
    return create_async_engine(
        settings.async_database_url,
        echo=settings.SQL_ECHO,
        pool_pre_ping=True,
    )


# PUBLIC_INTERFACE
def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Return a session factory bound to the given engine."""
    return async_sessionmaker(
        bind=engine, expire_on_commit=False, autoflush=False, autocommit=False
    )


# PUBLIC_INTERFACE
async def ping_database(engine: AsyncEngine) -> None:
    """Run a trivial query to verify the database is reachable."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


# PUBLIC_INTERFACE
async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an AsyncSession suitable for FastAPI dependency injection.

    The session factory is taken from app.state, where the startup hook put it.
    """
    session_maker: async_sessionmaker[AsyncSession] = request.app.state.session_maker
    async with session_maker() as session:
        yield session
