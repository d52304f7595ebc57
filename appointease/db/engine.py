"""Postgres engine, sessions and the shared Redis client.

Request handlers get a session per request from ``get_session``. The
scanner, the status sweep and the audit writer open their own sessions
from ``async_session_factory``, one per unit of work.
"""

from __future__ import annotations

import contextlib
from collections.abc import AsyncGenerator

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from appointease.config import settings

engine: AsyncEngine = create_async_engine(
    settings.db.database_url,
    echo=settings.log_level == "DEBUG",
    pool_size=settings.db.pool_size,
    max_overflow=settings.db.max_overflow,
    pool_pre_ping=True,
    pool_recycle=3600,
)

# Dispatch reads claimed rows after commit, so attributes must not expire.
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

# Bearer-token lookups and public rate-limit counters.
redis_client: aioredis.Redis = aioredis.from_url(settings.db.redis_url, decode_responses=True)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: commit on success, roll back on any error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@contextlib.asynccontextmanager
async def db_lifespan() -> AsyncGenerator[None, None]:
    """Open the pool for the app's lifetime; dispose Postgres and Redis on exit.

    Outside production the tables are created from the models. Production
    schemas come from Alembic.
    """
    from appointease.models import Base

    async with engine.begin() as conn:
        if not settings.is_production:
            await conn.run_sync(Base.metadata.create_all)
    try:
        yield
    finally:
        await engine.dispose()
        await redis_client.aclose()
