from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator

from app.api.dependencies import ReposDep, require_role
from app.models.principal import Principal
from app.models.user import ALL_ROLES, ROLE_SUPERADMIN
from app.services.role_cache import RoleCache, RoleResolver, get_role_cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])


class RolesIn(BaseModel):
    roles: list[str]

    @field_validator("roles")
    @classmethod
    def known_roles(cls, v: list[str]) -> list[str]:
        unknown = set(v) - ALL_ROLES
        if unknown:
            raise ValueError(f"unknown roles: {', '.join(sorted(unknown))}")
        return sorted(set(v))


class UserRolesOut(BaseModel):
    id: UUID
    email: str
    roles: list[str]


@router.put("/users/{user_id}/roles", response_model=UserRolesOut)
async def set_user_roles(
    user_id: UUID,
    body: RolesIn,
    principal: Annotated[Principal, Depends(require_role(ROLE_SUPERADMIN))],
    repos: ReposDep,
    cache: Annotated[RoleCache, Depends(get_role_cache)],
) -> UserRolesOut:
    user = await repos.users.set_roles(user_id, tuple(body.roles))
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user not found")

    # Next request from this user must see the new roles.
    await RoleResolver(cache).invalidate(user_id)
    logger.info(
        "Roles of user=%s set to %s by user=%s",
        user_id,
        list(user.roles),
        principal.user_id,
    )
    return UserRolesOut(id=user.id, email=user.email, roles=list(user.roles))
