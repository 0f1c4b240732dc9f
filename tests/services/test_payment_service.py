from __future__ import annotations

import json
from uuid import uuid4

import pytest
from prometheus_client import REGISTRY

from app.repos.registry import memory_repos
from app.services.errors import WebhookSignatureError
from app.services.payment_service import PaymentService
from tests.conftest import (
    WEBHOOK_SECRET,
    purchase_event,
    run,
    seed_course,
    seed_user,
    stripe_signature,
)

NOW = 1_760_000_000


def _service(secret: str | None = WEBHOOK_SECRET) -> PaymentService:
    return PaymentService(memory_repos, webhook_secret=secret, clock=lambda: NOW)


def _events(event_type: str, outcome: str) -> float:
    return (
        REGISTRY.get_sample_value(
            "payment_webhook_events_total",
            {"event_type": event_type, "outcome": outcome},
        )
        or 0.0
    )


def test_course_purchase_enrolls_and_records_transaction() -> None:
    learner = seed_user()
    course, _ = seed_course()
    body = purchase_event(learner.id, course.id)
    before = _events("payment_intent.succeeded", "processed")

    outcome = run(_service().handle_webhook(body, stripe_signature(body)))

    assert outcome == "processed"
    enrollment = run(memory_repos.enrollments.find(learner.id, course.id))
    assert enrollment is not None
    tx = run(memory_repos.payments.get_by_gateway_id("pi_3Nabc123"))
    assert tx.amount_cents == 4900
    assert tx.currency == "USD"
    assert tx.completed_at == NOW
    assert json.loads(tx.gateway_response)["id"] == "pi_3Nabc123"
    assert _events("payment_intent.succeeded", "processed") - before == 1


def test_redelivery_is_idempotent() -> None:
    learner = seed_user()
    course, _ = seed_course()
    body = purchase_event(learner.id, course.id)
    service = _service()

    run(service.handle_webhook(body, stripe_signature(body)))
    run(service.handle_webhook(body, stripe_signature(body)))

    assert len(memory_repos.payments._by_gateway_id) == 1
    assert len(memory_repos.enrollments._by_id) == 1


def test_bad_signature_is_rejected() -> None:
    learner = seed_user()
    course, _ = seed_course()
    body = purchase_event(learner.id, course.id)
    before = _events("unknown", "rejected")

    with pytest.raises(WebhookSignatureError):
        run(_service().handle_webhook(body, stripe_signature(body, secret="whsec_other")))

    assert _events("unknown", "rejected") - before == 1
    assert memory_repos.enrollments._by_id == {}


def test_missing_signature_is_rejected() -> None:
    body = purchase_event(uuid4(), uuid4())
    with pytest.raises(WebhookSignatureError):
        run(_service().handle_webhook(body, None))


def test_unsigned_delivery_accepted_without_secret() -> None:
    learner = seed_user()
    course, _ = seed_course()
    body = purchase_event(learner.id, course.id)

    assert run(_service(secret=None).handle_webhook(body, None)) == "processed"


def test_non_json_payload_is_rejected() -> None:
    with pytest.raises(WebhookSignatureError):
        run(_service(secret=None).handle_webhook(b"not json", None))


def test_unrelated_event_is_ignored() -> None:
    learner = seed_user()
    course, _ = seed_course()
    body = purchase_event(learner.id, course.id, event_type="customer.created")

    outcome = run(_service().handle_webhook(body, stripe_signature(body)))

    assert outcome == "ignored"
    assert memory_repos.enrollments._by_id == {}


def test_other_payment_type_is_ignored() -> None:
    learner = seed_user()
    course, _ = seed_course()
    body = purchase_event(learner.id, course.id, payment_type="subscription")

    assert run(_service().handle_webhook(body, stripe_signature(body))) == "ignored"


@pytest.mark.parametrize("known", ["learner", "course"])
def test_purchase_for_unknown_party_is_ignored(known: str) -> None:
    learner = seed_user()
    course, _ = seed_course()
    learner_id = learner.id if known == "learner" else uuid4()
    course_id = course.id if known == "course" else uuid4()
    body = purchase_event(learner_id, course_id)

    assert run(_service().handle_webhook(body, stripe_signature(body))) == "ignored"
    assert memory_repos.payments._by_gateway_id == {}


def test_malformed_metadata_is_ignored() -> None:
    body = purchase_event("not-a-uuid", uuid4())
    assert run(_service().handle_webhook(body, stripe_signature(body))) == "ignored"


def test_non_utf8_payload_is_rejected() -> None:
    before = _events("unknown", "rejected")
    with pytest.raises(WebhookSignatureError):
        run(_service(secret=None).handle_webhook(b"\xff\xfe{}", None))
    assert _events("unknown", "rejected") - before == 1


@pytest.mark.parametrize(
    "data",
    [
        "pi_1",
        {"object": "pi_1"},
        {"object": {"id": "pi_1", "metadata": "course_purchase"}},
        {"object": {"id": 42, "metadata": {"payment_type": "course_purchase"}}},
    ],
    ids=["data-not-object", "object-not-object", "metadata-not-object", "id-not-string"],
)
def test_misshapen_event_is_ignored(data) -> None:
    body = json.dumps({"type": "payment_intent.succeeded", "data": data}).encode()
    assert run(_service().handle_webhook(body, stripe_signature(body))) == "ignored"


def test_non_numeric_amount_is_ignored() -> None:
    learner = seed_user()
    course, _ = seed_course()
    event = json.loads(purchase_event(learner.id, course.id))
    event["data"]["object"]["amount_received"] = "lots"
    body = json.dumps(event).encode()

    assert run(_service().handle_webhook(body, stripe_signature(body))) == "ignored"
    assert memory_repos.enrollments._by_id == {}
