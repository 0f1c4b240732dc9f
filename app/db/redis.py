"""Redis connection management.

Mirrors engine.py: with REDIS_URL set we hold one pooled async client,
otherwise ``redis_pool`` is None and the role cache falls back to its
in-memory implementation.  Redis only ever holds derived, re-readable
state here (cached role sets), so losing it costs a few extra queries.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from app.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,  # return str instead of bytes
        max_connections=20,
    )
else:
    redis_pool = None


async def ping_redis() -> bool:
    if redis_pool is None:
        return False
    try:
        await redis_pool.ping()  # type: ignore[misc]
    except Exception:
        logger.exception("Redis ping failed")
        return False
    return True


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis, mirrors lifespan_db()."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured, role cache is in-memory")
        yield
        return

    if await ping_redis():
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    else:
        # Keep serving; role lookups fall through to the database.
        logger.warning("Redis unreachable on startup: %s", SETTINGS.redis_url)

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
