from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

# Platform roles.  A user may hold several (an educator can also learn).
ROLE_LEARNER = "learner"
ROLE_EDUCATOR = "educator"
ROLE_INSTITUTION_ADMIN = "institutionadmin"
ROLE_SUPERADMIN = "superadmin"

ALL_ROLES = frozenset(
    {ROLE_LEARNER, ROLE_EDUCATOR, ROLE_INSTITUTION_ADMIN, ROLE_SUPERADMIN}
)
ADMIN_ROLES = frozenset({ROLE_INSTITUTION_ADMIN, ROLE_SUPERADMIN})


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    email: str
    first_name: str = ""
    last_name: str = ""
    roles: tuple[str, ...] = ()  # immutable
    is_active: bool = True

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email

    @staticmethod
    def new(
        *,
        email: str,
        first_name: str = "",
        last_name: str = "",
        roles: tuple[str, ...] = (ROLE_LEARNER,),
    ) -> User:
        return User(
            id=uuid4(),
            email=email.strip().lower(),
            first_name=first_name,
            last_name=last_name,
            roles=roles,
        )
