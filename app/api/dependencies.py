from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from app.core.config import SETTINGS
from app.models.principal import Principal
from app.models.user import ADMIN_ROLES
from app.repos.registry import Repos, get_repos
from app.services import token_service
from app.services.certificate_service import CertificateIssuer
from app.services.enrollment_service import EnrollmentService
from app.services.payment_service import PaymentService
from app.services.performance_service import PerformanceService
from app.services.role_cache import RoleCache, RoleResolver, get_role_cache

logger = logging.getLogger(__name__)

# Tokens are issued by the platform's auth service, not by us.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")

ReposDep = Annotated[Repos, Depends(get_repos)]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
    repos: ReposDep,
    cache: Annotated[RoleCache, Depends(get_role_cache)],
) -> Principal:
    """Validate the bearer token and attach the caller's current roles.

    Used as a FastAPI dependency on any protected endpoint.
    """
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise _unauthorized("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise _unauthorized("Invalid token") from None

    try:
        user_id = UUID(claims["sub"])
    except ValueError:
        logger.warning("Token subject is not a user id: %r", claims["sub"])
        raise _unauthorized("Invalid token") from None

    roles = await RoleResolver(cache).roles_for(repos.users, user_id)
    principal = Principal(user_id=str(user_id), roles=roles)
    logger.debug(
        "Token validated for user=%s roles=%s",
        principal.user_id,
        principal.roles,
    )
    return principal


CurrentUser = Annotated[Principal, Depends(require_user)]


def require_role(role: str):
    """Dependency factory: demand a specific role.

    Usage: Depends(require_role("superadmin"))
    Returns the Principal if the role is present, else 403.
    """

    def _guard(principal: CurrentUser) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s missing role=%s",
                principal.user_id,
                role,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


def require_any_role(roles: set[str] | frozenset[str]):
    """Dependency factory: demand at least one of the given roles.

    Usage: Depends(require_any_role({"learner", "superadmin"}))
    """

    def _guard(principal: CurrentUser) -> Principal:
        if not principal.has_any_role(roles):
            logger.warning(
                "Access denied: user=%s has none of roles=%s",
                principal.user_id,
                sorted(roles),
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


require_admin = require_any_role(ADMIN_ROLES)


def ensure_can_act_for(principal: Principal, user_id: UUID) -> None:
    """403 unless ``principal`` is ``user_id`` or an admin."""
    if not principal.can_act_for(user_id):
        logger.warning(
            "Access denied: user=%s acting on data of user=%s",
            principal.user_id,
            user_id,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to access another user's data",
        )


# ---------------------------------------------------------------------------
# Service wiring (one instance per request, bound to that request's repos)
# ---------------------------------------------------------------------------


def get_enrollment_service(repos: ReposDep) -> EnrollmentService:
    return EnrollmentService(repos)


def get_performance_service(repos: ReposDep) -> PerformanceService:
    return PerformanceService(repos)


def get_certificate_issuer(repos: ReposDep) -> CertificateIssuer:
    return CertificateIssuer(repos)


def get_payment_service(repos: ReposDep) -> PaymentService:
    return PaymentService(repos, webhook_secret=SETTINGS.stripe_webhook_secret)
