"""Bearer tokens and webhook signatures must never reach the logs."""

from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_payment_service
from app.main import app
from app.repos.registry import memory_repos
from app.services.payment_service import PaymentService
from tests.conftest import (
    WEBHOOK_SECRET,
    mint_token,
    purchase_event,
    seed_course,
    seed_user,
    stripe_signature,
)


def test_rejected_token_is_not_logged(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    bogus = mint_token(seed_user().id)[:-4] + "AAAA"

    with caplog.at_level(logging.DEBUG):
        resp = client.get("/v1/enrollments", headers={"Authorization": f"Bearer {bogus}"})

    assert resp.status_code == 401
    assert bogus not in caplog.text


def test_accepted_token_is_not_logged(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    token = mint_token(seed_user().id)

    with caplog.at_level(logging.DEBUG):
        client.get("/v1/enrollments", headers={"Authorization": f"Bearer {token}"})

    assert token not in caplog.text


def test_webhook_secret_and_signature_are_not_logged(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    app.dependency_overrides[get_payment_service] = lambda: PaymentService(
        memory_repos, webhook_secret=WEBHOOK_SECRET
    )
    learner = seed_user()
    course, _ = seed_course()
    body = purchase_event(learner.id, course.id)
    good = stripe_signature(body)
    bad = stripe_signature(body, secret="whsec_wrong")

    with caplog.at_level(logging.DEBUG):
        client.post("/v1/payments/webhook", content=body, headers={"Stripe-Signature": good})
        client.post("/v1/payments/webhook", content=body, headers={"Stripe-Signature": bad})

    for secret in (WEBHOOK_SECRET, good.split("v1=")[1], bad.split("v1=")[1]):
        assert secret not in caplog.text
