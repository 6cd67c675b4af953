"""
Async SQLAlchemy engine and session factory.

Uses ``asyncpg`` as the PostgreSQL driver for non-blocking I/O.  The
connection is verified once at startup by ``init_storage`` instead of
being set up lazily on the first request.
"""

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from roboride.config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_size=10,
    max_overflow=5,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""


async def ping_database(bind: AsyncEngine = engine) -> None:
    """Round-trip ``SELECT 1``; raises on any connection problem."""
    async with bind.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def init_storage() -> None:
    await ping_database()
    logger.info("Database connection verified")


async def close_storage() -> None:
    await engine.dispose()
