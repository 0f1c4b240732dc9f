"""Health and readiness endpoints.

  /health (liveness): "is this process alive?"  Always 200; the body
    reports per-dependency status so a dashboard can show "degraded".

  /ready (readiness): "can this instance serve traffic right now?"
    503 when a configured database is unreachable, since no enrollment,
    progress or certificate request can succeed without it.  Redis is
    not critical: role lookups fall back to the database.
"""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from app.db import engine as db_engine
from app.db import redis as db_redis

router = APIRouter(tags=["health"])


async def _check(configured: bool, ping) -> str:
    if not configured:
        return "not_configured"
    return "ok" if await ping() else "degraded"


@router.get("/health")
async def health() -> dict:
    """Liveness check plus dependency status.

    Returns 200 even when degraded: a 503 here would get the container
    restarted, which doesn't help when Postgres is down.
    """
    checks = {
        "database": await _check(db_engine.engine is not None, db_engine.ping_database),
        "redis": await _check(db_redis.redis_pool is not None, db_redis.ping_redis),
    }
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if db_engine.engine is not None and not await db_engine.ping_database():
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
