"""
Database configuration and session management.

Provides:
- Async engine creation with dialect-specific configuration
- Session factories for the relational store
- Database initialization utilities (tables plus counter triggers)
- Connection health check
"""

import logging
from functools import lru_cache
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.config import get_settings

logger = logging.getLogger(__name__)


def get_async_database_url(sync_url: str) -> str:
    """Convert sync database URL to async URL."""
    if sync_url.startswith("sqlite:///"):
        # SQLite async uses aiosqlite
        return sync_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    if sync_url.startswith("postgresql://"):
        # PostgreSQL async uses asyncpg
        return sync_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if sync_url.startswith("postgres://"):
        return sync_url.replace("postgres://", "postgresql+asyncpg://", 1)
    return sync_url


def create_engine_for_url(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine configured for the database type.

    Args:
        database_url: Sync or async SQLAlchemy URL
        echo: Log SQL statements

    Returns:
        AsyncEngine
    """
    async_url = get_async_database_url(database_url)

    if "sqlite" in async_url.lower():
        url = make_url(async_url)
        if not url.database or url.database == ":memory:":
            # Single shared connection so every session sees the same database
            return create_async_engine(
                async_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=echo,
            )
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        return create_async_engine(async_url, echo=echo)

    return create_async_engine(
        async_url,
        pool_size=5,  # Maximum number of connections in pool
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_pre_ping=True,  # Test connections before using them
        echo=echo,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory used by the relational stores."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@lru_cache()
def get_engine() -> AsyncEngine:
    """Get the application-wide engine built from settings."""
    settings = get_settings()
    return create_engine_for_url(
        settings.database_url,
        echo=settings.log_level == "DEBUG",
    )


@lru_cache()
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return create_session_factory(get_engine())


async def init_db(engine: AsyncEngine) -> None:
    """
    Initialize database by creating all tables and counter triggers.

    This is useful for development and testing. In production, use Alembic migrations.
    """
    from src.models import Base

    logger.info("Creating database tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created successfully")


async def drop_all_tables(engine: AsyncEngine) -> None:
    """
    Drop all tables from the database.

    WARNING: This will delete all data. Use with caution.
    Primarily for testing and development.
    """
    from src.models import Base

    logger.warning("Dropping all database tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("All database tables dropped")


async def check_connection(engine: AsyncEngine) -> bool:
    """
    Test database connection.

    Returns:
        bool: True if connection successful, False otherwise
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection successful")
        return True
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database connection failed: {e}")
        return False
