"""Database configuration and session management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from functools import lru_cache

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from awarescore.config.settings import Settings, get_settings

SessionFactory = async_sessionmaker[AsyncSession]


def create_engine(settings: Settings | None = None) -> AsyncEngine:
    """Create an async engine from settings.

    SQLite URLs get no pool sizing; the test environment uses NullPool so
    connections are never shared between event loops.
    """
    settings = settings or get_settings()
    kwargs: dict = {"echo": settings.DEBUG}
    if settings.ENVIRONMENT == "test":
        kwargs["poolclass"] = NullPool
    elif not settings.DATABASE_URL.startswith("sqlite"):
        kwargs["pool_size"] = settings.DATABASE_POOL_SIZE
        kwargs["max_overflow"] = settings.DATABASE_MAX_OVERFLOW
    return create_async_engine(settings.DATABASE_URL, **kwargs)


def create_session_factory(engine: AsyncEngine) -> SessionFactory:
    """Create a session factory bound to an engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@lru_cache
def get_engine() -> AsyncEngine:
    """Get the process-wide engine built from settings."""
    return create_engine()


@lru_cache
def get_session_factory() -> SessionFactory:
    """Get the process-wide session factory."""
    return create_session_factory(get_engine())


async def init_db() -> None:
    """Verify database connectivity before serving work."""
    async with get_engine().begin() as conn:
        await conn.execute(text("SELECT 1"))


async def close_db() -> None:
    """Close database connections gracefully."""
    await get_engine().dispose()


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Context manager for obtaining a database session.

    Usage:
        async with get_async_session() as session:
            tracker = PhishingCampaignTracker(session, publisher)

    Yields:
        AsyncSession: A database session that will be automatically closed
    """
    async with get_session_factory()() as session:
        try:
            yield session
        finally:
            await session.close()
