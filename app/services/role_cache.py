"""Per-user role cache.

Every authenticated request needs the caller's current roles.  Roles are
read through this cache (key: user id, value: role set) so the common
case skips the users table.

Two freshness guarantees:

  1. TTL (ROLE_CACHE_TTL_SECONDS, default 5 minutes) bounds how long a
     missed invalidation can leave stale roles around.
  2. ``invalidate(user_id)`` is called by every code path that changes a
     user's roles, so grants and revocations normally apply on the very
     next request.

The cache is injected (``get_role_cache`` FastAPI dependency) rather than
held as ambient state, so tests swap in a fresh instance or a fake clock.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable
from uuid import UUID

from redis.exceptions import RedisError

from app.core.config import SETTINGS
from app.core.metrics import ROLE_CACHE_OPERATIONS
from app.db.redis import redis_pool
from app.repos.user_repo import UserRepo

logger = logging.getLogger(__name__)


@runtime_checkable
class RoleCache(Protocol):
    async def get(self, user_id: UUID) -> frozenset[str] | None:
        """Cached roles, or None on a miss or expired entry."""
        ...

    async def set(self, user_id: UUID, roles: frozenset[str]) -> None: ...

    async def invalidate(self, user_id: UUID) -> None: ...


class InMemoryRoleCache:
    """Process-local cache with TTL, for single-instance deployments and tests."""

    def __init__(
        self,
        ttl_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._store: dict[UUID, tuple[frozenset[str], float]] = {}

    async def get(self, user_id: UUID) -> frozenset[str] | None:
        entry = self._store.get(user_id)
        if entry is None:
            return None
        roles, stored_at = entry
        if self._clock() - stored_at >= self._ttl:
            del self._store[user_id]
            return None
        return roles

    async def set(self, user_id: UUID, roles: frozenset[str]) -> None:
        self._store[user_id] = (roles, self._clock())

    async def invalidate(self, user_id: UUID) -> None:
        self._store.pop(user_id, None)

    def clear(self) -> None:
        self._store.clear()


class RedisRoleCache:
    """Redis-backed cache, shared by every API instance.

    Invalidation on one instance is seen by all of them, which the
    in-memory variant cannot offer.
    """

    _PREFIX = "roles:"

    def __init__(self, redis_client, ttl_seconds: int) -> None:
        self._redis = redis_client
        self._ttl = ttl_seconds

    async def get(self, user_id: UUID) -> frozenset[str] | None:
        raw = await self._redis.get(f"{self._PREFIX}{user_id}")
        if raw is None:
            return None
        return frozenset(json.loads(raw))

    async def set(self, user_id: UUID, roles: frozenset[str]) -> None:
        await self._redis.setex(
            f"{self._PREFIX}{user_id}", self._ttl, json.dumps(sorted(roles))
        )

    async def invalidate(self, user_id: UUID) -> None:
        await self._redis.delete(f"{self._PREFIX}{user_id}")


class RoleResolver:
    """Reads a user's roles through the cache, falling back to the repo."""

    def __init__(self, cache: RoleCache) -> None:
        self._cache = cache

    async def roles_for(self, users: UserRepo, user_id: UUID) -> frozenset[str]:
        """Current roles; empty for unknown or deactivated users."""
        try:
            cached = await self._cache.get(user_id)
        except RedisError:
            logger.exception("Role cache read failed, falling back to database")
            cached = None
        if cached is not None:
            ROLE_CACHE_OPERATIONS.labels(result="hit").inc()
            return cached

        ROLE_CACHE_OPERATIONS.labels(result="miss").inc()
        user = await users.get_by_id(user_id)
        if user is None or not user.is_active:
            return frozenset()

        roles = frozenset(user.roles)
        try:
            await self._cache.set(user_id, roles)
        except RedisError:
            logger.exception("Role cache write failed")
        return roles

    async def invalidate(self, user_id: UUID) -> None:
        ROLE_CACHE_OPERATIONS.labels(result="invalidate").inc()
        await self._cache.invalidate(user_id)


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    role_cache: RoleCache = RedisRoleCache(redis_pool, SETTINGS.role_cache_ttl_seconds)
else:
    role_cache = InMemoryRoleCache(SETTINGS.role_cache_ttl_seconds)


def get_role_cache() -> RoleCache:
    """FastAPI dependency; override in tests to inject a different cache."""
    return role_cache
