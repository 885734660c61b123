"""
Database Session Management Module

This module builds the async SQLAlchemy engine and session factory for the
legacy wallet store. The engine owns the connection pool; it is created once
at startup and handed to the SQL document store.

Key Features:
- Async SQLAlchemy engine
- Connection pooling with acquisition and connect timeouts
- Table creation
- Health check
"""

from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ..utils.config import settings
from ..utils.logger import db_logger as logger


def normalize_database_url(url: str) -> str:
    """Hosted Postgres hands out postgres:// URLs; the async engine needs asyncpg."""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def create_engine(database_url: Optional[str] = None, timeout: Optional[float] = None) -> AsyncEngine:
    """
    Create the async engine for the legacy store.

    Args:
        database_url: SQLAlchemy URL, defaults to settings.DATABASE_URL
        timeout: Connect and pool acquisition timeout in seconds
    """
    url = normalize_database_url(database_url or settings.DATABASE_URL)
    timeout = timeout or settings.STORE_TIMEOUT_SECONDS

    options = {
        "echo": settings.SQL_ECHO,
        "pool_pre_ping": True,  # Basic connection health check
    }
    if url.startswith("sqlite"):
        options["connect_args"] = {"timeout": timeout}
    else:
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=timeout,
            pool_recycle=3600  # Recycle connections after 1 hour
        )
        if "asyncpg" in url:
            options["connect_args"] = {"timeout": timeout, "command_timeout": timeout}

    logger.info(f"Creating database engine for {url.split('@')[-1]}")
    return create_async_engine(url, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        expire_on_commit=False,
        class_=AsyncSession
    )


async def init_db(engine: AsyncEngine) -> None:
    """Create the wallet tables if they do not exist."""
    from .models import Base

    logger.info("Creating database tables")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


async def check_db_connection(session_factory: async_sessionmaker) -> bool:
    """Check if database connection is healthy"""
    try:
        async with session_factory() as db:
            await db.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database connection error: {str(e)}")
        return False
