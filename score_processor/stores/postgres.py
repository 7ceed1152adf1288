"""Database store with async SQLAlchemy.

Handles:
- Database session management
- Connection pooling
- Schema creation for local runs and tests
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from score_processor.settings import get_settings


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


# Engine and session factory (initialized on startup)
_engine = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


async def init_db(database_url: str | None = None) -> None:
    """Initialize database connection pool.

    Args:
        database_url: Override for the configured URL (e.g. a SQLite file in tests).
    """
    global _engine, _session_factory

    settings = get_settings()
    url = database_url or settings.async_database_url

    engine_options: dict[str, object] = {"echo": settings.debug}
    if not url.startswith("sqlite"):
        engine_options.update(
            connect_args=settings.asyncpg_connect_args,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
        )

    _engine = create_async_engine(url, **engine_options)
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def close_db() -> None:
    """Close database connection pool."""
    global _engine, _session_factory
    if _engine:
        await _engine.dispose()
        _engine = None
        _session_factory = None


async def ping_db() -> None:
    """Run a trivial query to validate connectivity early."""
    async with get_session() as session:
        await session.execute(text("SELECT 1"))


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session context manager.

    Usage:
        async with get_session() as session:
            result = await session.execute(query)
    """
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with _session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_tables() -> None:
    """Create all tables (for development/testing only)."""
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    # Register every model on Base.metadata before creating.
    import score_processor.models  # noqa: F401

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables() -> None:
    """Drop all tables (for testing only)."""
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
