from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.models.user import User


class UserRepo(Protocol):
    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def add(self, user: User) -> None: ...
    async def set_roles(self, user_id: UUID, roles: tuple[str, ...]) -> User | None: ...
    async def set_active(self, user_id: UUID, is_active: bool) -> User | None: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_email: dict[str, User] = {}
        self._by_id: dict[UUID, User] = {}

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def add(self, user: User) -> None:
        if user.email in self._by_email:
            raise ValueError("email already exists")
        self._by_email[user.email] = user
        self._by_id[user.id] = user

    async def set_roles(self, user_id: UUID, roles: tuple[str, ...]) -> User | None:
        return self._update(user_id, roles=roles)

    async def set_active(self, user_id: UUID, is_active: bool) -> User | None:
        return self._update(user_id, is_active=is_active)

    def _update(self, user_id: UUID, **changes: object) -> User | None:
        u = self._by_id.get(user_id)
        if u is None:
            return None
        updated = replace(u, **changes)
        self._by_id[user_id] = updated
        self._by_email[updated.email] = updated
        return updated
