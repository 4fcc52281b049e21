"""Database and Redis connections for the portal.

PostgreSQL through SQLAlchemy 2.0 async (asyncpg); Redis holds login
sessions, rate-limit counters and the cached rating factors.
"""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import redis.asyncio as aioredis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from src.config import settings

logger = logging.getLogger(__name__)

# ── PostgreSQL ───────────────────────────────────────────────────────

engine: AsyncEngine = create_async_engine(
    settings.db.database_url,
    echo=settings.db.database_echo,
    pool_size=settings.db.database_pool_size,
    max_overflow=settings.db.database_max_overflow,
    pool_pre_ping=True,
)

# Services commit explicitly and keep using the loaded rows afterwards
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request.

    Whatever the handler left pending is committed on success and rolled
    back if it raised; this also releases any row locks taken with
    SELECT ... FOR UPDATE.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ── Redis ────────────────────────────────────────────────────────────

redis_client: aioredis.Redis = aioredis.from_url(settings.db.redis_url, decode_responses=True)


def get_redis() -> aioredis.Redis:
    """FastAPI dependency returning the shared Redis client."""
    return redis_client


# ── Health ───────────────────────────────────────────────────────────


async def _ping_postgres() -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def _probe(ping: Callable[[], Awaitable[Any]]) -> dict[str, Any]:
    started = time.monotonic()
    try:
        await ping()
    except Exception as exc:
        return {"status": "error", "error": str(exc)}
    return {"status": "ok", "latency_ms": int((time.monotonic() - started) * 1000)}


async def check_connections() -> dict[str, Any]:
    """Ping PostgreSQL and Redis, reporting status and latency for each."""
    return {
        "postgresql": await _probe(_ping_postgres),
        "redis": await _probe(redis_client.ping),
    }


# ── Lifecycle ────────────────────────────────────────────────────────


@contextlib.asynccontextmanager
async def db_lifespan() -> AsyncGenerator[None, None]:
    """Open on startup, dispose on shutdown.

    Outside production the tables are created from the model metadata;
    production schemas come from the Alembic migrations.
    """
    from src.models import Base

    if not settings.is_production:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured (%d)", len(Base.metadata.tables))

    try:
        yield
    finally:
        await engine.dispose()
        await redis_client.aclose()
        logger.info("Database and Redis connections closed")
