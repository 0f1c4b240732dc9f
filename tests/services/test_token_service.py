from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from fastapi.testclient import TestClient

from app.services import token_service
from tests.conftest import seed_user


def _pem(public_key) -> str:
    return public_key.public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode()


@pytest.fixture
def issuer_key() -> ec.EllipticCurvePrivateKey:
    """Signing key of an external auth service, unrelated to ours."""
    return ec.generate_private_key(ec.SECP256R1())


def _issue(key: ec.EllipticCurvePrivateKey, sub: str, **overrides) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": token_service.ISSUER,
        "aud": token_service.AUDIENCE,
        "exp": now + timedelta(minutes=5),
        "iat": now,
        "jti": str(uuid.uuid4()),
    }
    payload.update(overrides)
    return jwt.encode(payload, key, algorithm="ES256")


def test_externally_issued_token_verifies_with_configured_key(issuer_key) -> None:
    token = _issue(issuer_key, "user-1")
    public_key = token_service.load_public_key(_pem(issuer_key.public_key()))

    claims = token_service.decode_access_token(token, public_key)

    assert claims["sub"] == "user-1"


def test_externally_issued_token_fails_against_other_key(issuer_key) -> None:
    token = _issue(issuer_key, "user-1")
    with pytest.raises(jwt.InvalidTokenError):
        token_service.decode_access_token(token)


def test_wrong_audience_is_rejected(issuer_key) -> None:
    token = _issue(issuer_key, "user-1", aud="some-other-service")
    public_key = token_service.load_public_key(_pem(issuer_key.public_key()))
    with pytest.raises(jwt.InvalidAudienceError):
        token_service.decode_access_token(token, public_key)


def test_load_public_key_rejects_rsa() -> None:
    rsa_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    with pytest.raises(ValueError, match="P-256"):
        token_service.load_public_key(_pem(rsa_key.public_key()))


def test_load_public_key_rejects_other_curves() -> None:
    p384 = ec.generate_private_key(ec.SECP384R1())
    with pytest.raises(ValueError, match="P-256"):
        token_service.load_public_key(_pem(p384.public_key()))


def test_create_access_token_needs_signing_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(token_service, "_private_key", None)
    with pytest.raises(RuntimeError, match="no signing key"):
        token_service.create_access_token(sub="user-1")


def test_api_accepts_tokens_from_configured_issuer(
    client: TestClient, issuer_key, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(token_service, "_public_key", issuer_key.public_key())
    learner = seed_user()

    ok = client.get(
        "/v1/enrollments",
        headers={"Authorization": f"Bearer {_issue(issuer_key, str(learner.id))}"},
    )
    foreign = client.get(
        "/v1/enrollments",
        headers={"Authorization": f"Bearer {token_service.create_access_token(sub=str(learner.id))}"},
    )

    assert ok.status_code == 200
    assert foreign.status_code == 401
