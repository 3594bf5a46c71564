"""Database session management for the seating engine."""

from typing import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.pool import NullPool, AsyncAdaptedQueuePool

from core.config import settings


class DatabaseConfig:
    """Database configuration settings."""

    POOL_SIZE: int = settings.db_pool_size
    MAX_OVERFLOW: int = settings.db_max_overflow
    POOL_TIMEOUT: int = settings.db_pool_timeout
    POOL_RECYCLE: int = settings.db_pool_recycle
    POOL_PRE_PING: bool = True
    ECHO: bool = settings.db_echo

    # asyncpg connection settings
    CONNECT_ARGS: dict = {
        "server_settings": {
            "application_name": "seating_engine",
        },
        "command_timeout": 60,
        "timeout": 10,
    }


def create_engine(
    url: str = settings.database_url,
    pool_size: int = DatabaseConfig.POOL_SIZE,
    max_overflow: int = DatabaseConfig.MAX_OVERFLOW,
    echo: bool = DatabaseConfig.ECHO,
) -> AsyncEngine:
    """
    Create async SQLAlchemy engine.

    SQLite URLs get a plain engine without pool tuning; everything else
    gets a queue pool with the configured limits.

    Args:
        url: Database URL
        pool_size: Number of connections to maintain in pool
        max_overflow: Max number of connections to create beyond pool_size
        echo: Whether to log all SQL statements

    Returns:
        Async SQLAlchemy engine
    """
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo)

    return create_async_engine(
        url,
        echo=echo,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=DatabaseConfig.POOL_TIMEOUT,
        pool_recycle=DatabaseConfig.POOL_RECYCLE,
        pool_pre_ping=DatabaseConfig.POOL_PRE_PING,
        connect_args=DatabaseConfig.CONNECT_ARGS,
    )


def create_test_engine(url: str) -> AsyncEngine:
    """
    Create async engine for testing with NullPool.

    Args:
        url: Database URL

    Returns:
        Async SQLAlchemy engine with NullPool
    """
    return create_async_engine(url, echo=False, poolclass=NullPool)


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    """Build a session factory whose records stay usable after commit."""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# Global engine instance
engine: AsyncEngine = create_engine()

# Async session factory
AsyncSessionLocal = create_session_factory(engine)


@asynccontextmanager
async def get_session_context(
    factory: async_sessionmaker = AsyncSessionLocal,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for a committed unit of work.

    Yields:
        AsyncSession instance

    Example:
        async with get_session_context() as session:
            session.add(record)
    """
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(bind: AsyncEngine = engine) -> None:
    """Initialize database by creating all tables."""
    from .base import Base
    from . import models_sqlalchemy  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db(bind: AsyncEngine = engine) -> None:
    """Drop all database tables. Use with caution!"""
    from .base import Base

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def close_db() -> None:
    """Close database engine and all connections."""
    await engine.dispose()
