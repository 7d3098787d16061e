"""Database base class and session management.

This module provides:
- SQLAlchemy base class for declarative models
- Engine and session factory for the Tutor database
"""

from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from ..core.config import Settings


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


# =============================================================================
# Tutor Database
# =============================================================================

def create_tutor_engine(settings: Settings) -> AsyncEngine:
    """Build an async engine; pool sizing only applies to server databases."""
    if settings.is_sqlite:
        database = make_url(settings.TUTOR_DB_URL).database
        if database and database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)
        return create_async_engine(settings.TUTOR_DB_URL, echo=False)

    return create_async_engine(
        settings.TUTOR_DB_URL,
        echo=False,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
    )


def create_tutor_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to a Tutor engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# =============================================================================
# Utility Functions
# =============================================================================

async def init_database(engine: AsyncEngine) -> None:
    """Create all Tutor tables."""
    from .tutor import models  # noqa: F401  (registers tables on Base.metadata)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
