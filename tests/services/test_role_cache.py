from __future__ import annotations

from uuid import uuid4

from prometheus_client import REGISTRY
from redis.exceptions import ConnectionError as RedisConnectionError

from app.models.user import ROLE_EDUCATOR, ROLE_LEARNER
from app.repos.registry import memory_repos
from app.services.role_cache import InMemoryRoleCache, RoleCache, RoleResolver
from tests.conftest import run, seed_user


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _ops(result: str) -> float:
    return REGISTRY.get_sample_value("role_cache_operations_total", {"result": result}) or 0.0


def test_in_memory_cache_satisfies_protocol() -> None:
    assert isinstance(InMemoryRoleCache(60), RoleCache)


def test_second_lookup_is_a_hit() -> None:
    user = seed_user(roles=(ROLE_LEARNER, ROLE_EDUCATOR))
    resolver = RoleResolver(InMemoryRoleCache(60))
    hits, misses = _ops("hit"), _ops("miss")

    first = run(resolver.roles_for(memory_repos.users, user.id))
    second = run(resolver.roles_for(memory_repos.users, user.id))

    assert first == second == frozenset({ROLE_LEARNER, ROLE_EDUCATOR})
    assert _ops("miss") - misses == 1
    assert _ops("hit") - hits == 1


def test_cached_roles_survive_until_invalidated() -> None:
    user = seed_user()
    resolver = RoleResolver(InMemoryRoleCache(60))
    run(resolver.roles_for(memory_repos.users, user.id))

    run(memory_repos.users.set_roles(user.id, (ROLE_EDUCATOR,)))
    stale = run(resolver.roles_for(memory_repos.users, user.id))
    run(resolver.invalidate(user.id))
    fresh = run(resolver.roles_for(memory_repos.users, user.id))

    assert stale == frozenset({ROLE_LEARNER})
    assert fresh == frozenset({ROLE_EDUCATOR})


def test_entries_expire_after_ttl() -> None:
    user = seed_user()
    clock = FakeClock()
    cache = InMemoryRoleCache(300, clock=clock)
    resolver = RoleResolver(cache)
    run(resolver.roles_for(memory_repos.users, user.id))

    clock.now += 299
    assert run(cache.get(user.id)) == frozenset({ROLE_LEARNER})
    clock.now += 1
    assert run(cache.get(user.id)) is None


def test_unknown_and_inactive_users_have_no_roles() -> None:
    user = seed_user()
    run(memory_repos.users.set_active(user.id, False))
    cache = InMemoryRoleCache(60)
    resolver = RoleResolver(cache)

    assert run(resolver.roles_for(memory_repos.users, user.id)) == frozenset()
    assert run(resolver.roles_for(memory_repos.users, uuid4())) == frozenset()
    assert run(cache.get(user.id)) is None


class _DownCache:
    async def get(self, user_id):
        raise RedisConnectionError("connection refused")

    async def set(self, user_id, roles):
        raise RedisConnectionError("connection refused")

    async def invalidate(self, user_id):
        raise RedisConnectionError("connection refused")


def test_cache_outage_falls_back_to_repo() -> None:
    user = seed_user()
    roles = run(RoleResolver(_DownCache()).roles_for(memory_repos.users, user.id))
    assert roles == frozenset({ROLE_LEARNER})
