from __future__ import annotations

from fastapi.testclient import TestClient

from app.api.dependencies import get_payment_service
from app.main import app
from app.repos.registry import memory_repos
from app.services.payment_service import PaymentService
from tests.conftest import (
    WEBHOOK_SECRET,
    purchase_event,
    run,
    seed_course,
    seed_user,
    stripe_signature,
)


def _signed_service() -> None:
    app.dependency_overrides[get_payment_service] = lambda: PaymentService(
        memory_repos, webhook_secret=WEBHOOK_SECRET
    )


def test_webhook_enrolls_buyer(client: TestClient) -> None:
    _signed_service()
    learner = seed_user()
    course, _ = seed_course()
    body = purchase_event(learner.id, course.id)

    resp = client.post(
        "/v1/payments/webhook",
        content=body,
        headers={"Stripe-Signature": stripe_signature(body), "Content-Type": "application/json"},
    )

    assert resp.status_code == 200
    assert resp.json() == {"received": True}
    assert run(memory_repos.enrollments.find(learner.id, course.id)) is not None


def test_webhook_bad_signature_is_400(client: TestClient) -> None:
    _signed_service()
    learner = seed_user()
    course, _ = seed_course()
    body = purchase_event(learner.id, course.id)

    resp = client.post(
        "/v1/payments/webhook",
        content=body,
        headers={"Stripe-Signature": "t=1,v1=deadbeef"},
    )

    assert resp.status_code == 400
    assert run(memory_repos.enrollments.find(learner.id, course.id)) is None


def test_webhook_needs_no_bearer_token(client: TestClient) -> None:
    _signed_service()
    body = purchase_event("x", "y", event_type="charge.refunded")

    resp = client.post(
        "/v1/payments/webhook",
        content=body,
        headers={"Stripe-Signature": stripe_signature(body)},
    )

    assert resp.status_code == 200


def test_misshapen_webhook_is_acknowledged(client: TestClient) -> None:
    _signed_service()
    body = b'{"type": "payment_intent.succeeded", "data": {"object": "pi_1"}}'

    resp = client.post(
        "/v1/payments/webhook",
        content=body,
        headers={"Stripe-Signature": stripe_signature(body)},
    )

    assert resp.status_code == 200


def test_non_utf8_webhook_is_400(client: TestClient) -> None:
    _signed_service()
    resp = client.post(
        "/v1/payments/webhook",
        content=b"\xff\xfe{}",
        headers={"Stripe-Signature": "t=1,v1=deadbeef"},
    )
    assert resp.status_code == 400
