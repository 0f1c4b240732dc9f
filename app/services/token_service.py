"""JWT bearer token creation and validation (ES256).

Tokens carry identity only (``sub`` = user id).  Roles are deliberately
absent: they are resolved per request through the role cache, so a role
change applies without waiting for tokens to expire.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from app.core.config import SETTINGS

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Key management
# ---------------------------------------------------------------------------
# Tokens are minted by the platform's auth service; we only hold its
# public key (JWT_PUBLIC_KEY / JWT_PUBLIC_KEY_FILE).  Without one (dev and
# test only, config refuses prod) an ephemeral pair is generated on import
# and create_access_token() signs with it.


def load_public_key(pem: str) -> ec.EllipticCurvePublicKey:
    """Parse a PEM public key; raises ValueError unless it is a P-256 EC key."""
    key = serialization.load_pem_public_key(pem.encode())
    if not isinstance(key, ec.EllipticCurvePublicKey) or not isinstance(
        key.curve, ec.SECP256R1
    ):
        raise ValueError("JWT public key must be an ES256 (P-256) key")
    return key


_private_key: ec.EllipticCurvePrivateKey | None
if SETTINGS.jwt_public_key:
    _private_key = None
    _public_key = load_public_key(SETTINGS.jwt_public_key)
else:
    logger.warning("No JWT public key configured, using an ephemeral signing key")
    _private_key = ec.generate_private_key(ec.SECP256R1())
    _public_key = _private_key.public_key()


ALGORITHM = "ES256"
ISSUER = "lms-platform"
AUDIENCE = "lms-progress-service"
ACCESS_TOKEN_TTL_MIN = 15


def create_access_token(*, sub: str, ttl_minutes: int = ACCESS_TOKEN_TTL_MIN) -> str:
    """Build and sign an access token for ``sub``."""
    if _private_key is None:
        raise RuntimeError("no signing key: tokens are issued by the auth service")
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ttl_minutes),
        "iat": now,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(
    token: str, public_key: ec.EllipticCurvePublicKey | None = None
) -> dict:
    """Verify signature and claims, return the payload.

    Pins algorithm to ES256 to prevent alg:none and alg-switching attacks.
    Validates exp, iss, and aud automatically via PyJWT options.

    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        public_key or _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
