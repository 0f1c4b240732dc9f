from __future__ import annotations

from dataclasses import dataclass

from app.models.user import ADMIN_ROLES


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity for the current request.

    ``user_id`` comes from the JWT ``sub`` claim.  ``roles`` are NOT taken
    from the token: they are resolved through the role cache on every
    request, so a role change takes effect as soon as the cache entry is
    invalidated instead of when the token expires.
    """

    user_id: str
    roles: frozenset[str]

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, roles: set[str] | frozenset[str]) -> bool:
        return bool(self.roles & roles)

    def is_admin(self) -> bool:
        return self.has_any_role(ADMIN_ROLES)

    def can_act_for(self, user_id: object) -> bool:
        """True when acting on ``user_id``'s own data, or as an admin."""
        return self.user_id == str(user_id) or self.is_admin()
