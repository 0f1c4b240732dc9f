"""Payment gateway webhook handling.

Only course purchases are acted on: a ``payment_intent.succeeded`` event
whose metadata says ``payment_type=course_purchase`` records the
transaction and enrolls the learner.  Both steps are idempotent, so
Stripe's at-least-once redelivery is harmless.  Every other event is
acknowledged and ignored.
"""

from __future__ import annotations

import datetime
import json
import logging
from collections.abc import Callable
from typing import Any
from uuid import UUID

import stripe

from app.core.metrics import PAYMENT_WEBHOOK_EVENTS
from app.models.payment import PaymentTransaction
from app.repos.registry import Repos
from app.services.enrollment_service import EnrollmentService
from app.services.errors import (
    DuplicateTransactionError,
    NotFoundError,
    WebhookSignatureError,
)

logger = logging.getLogger(__name__)

GATEWAY = "stripe"
COURSE_PURCHASE_EVENT = "payment_intent.succeeded"
COURSE_PURCHASE_TYPE = "course_purchase"


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


def _as_dict(value: Any) -> dict[str, Any]:
    """Event sub-objects, or {} when the sender put something else there."""
    return value if isinstance(value, dict) else {}


def _parse_uuid(value: Any) -> UUID | None:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


class PaymentService:
    def __init__(
        self,
        repos: Repos,
        *,
        webhook_secret: str | None,
        enrollments: EnrollmentService | None = None,
        clock: Callable[[], int] = _now,
    ) -> None:
        self._repos = repos
        self._secret = webhook_secret
        self._enrollments = enrollments or EnrollmentService(repos, clock=clock)
        self._clock = clock

    def parse_event(self, raw_body: bytes, signature_header: str | None) -> dict[str, Any]:
        """Verify the Stripe-Signature header (when a secret is set) and decode."""
        try:
            payload = raw_body.decode("utf-8")
        except UnicodeDecodeError:
            raise WebhookSignatureError("payload is not valid UTF-8") from None
        if self._secret:
            try:
                stripe.WebhookSignature.verify_header(
                    payload, signature_header or "", self._secret
                )
            except stripe.SignatureVerificationError as exc:
                raise WebhookSignatureError(str(exc)) from None
        else:
            logger.warning("STRIPE_WEBHOOK_SECRET not set, accepting unsigned webhook")

        try:
            event = json.loads(payload)
        except json.JSONDecodeError:
            raise WebhookSignatureError("payload is not valid JSON") from None
        if not isinstance(event, dict):
            raise WebhookSignatureError("payload is not a JSON object")
        return event

    async def handle_webhook(self, raw_body: bytes, signature_header: str | None) -> str:
        """Process one delivery.  Returns the outcome: processed or ignored."""
        try:
            event = self.parse_event(raw_body, signature_header)
        except WebhookSignatureError as exc:
            PAYMENT_WEBHOOK_EVENTS.labels(event_type="unknown", outcome="rejected").inc()
            logger.warning("Rejected payment webhook: %s", exc)
            raise

        event_type = str(event.get("type", "unknown"))
        obj = _as_dict(_as_dict(event.get("data")).get("object"))
        metadata = _as_dict(obj.get("metadata"))

        if (
            event_type == COURSE_PURCHASE_EVENT
            and metadata.get("payment_type") == COURSE_PURCHASE_TYPE
        ):
            outcome = await self._course_purchase(obj, metadata)
        else:
            logger.debug("Ignoring payment event %s", event_type)
            outcome = "ignored"

        PAYMENT_WEBHOOK_EVENTS.labels(event_type=event_type, outcome=outcome).inc()
        return outcome

    async def _course_purchase(
        self, intent: dict[str, Any], metadata: dict[str, Any]
    ) -> str:
        learner_id = _parse_uuid(metadata.get("learner_id"))
        course_id = _parse_uuid(metadata.get("course_id"))
        intent_id = intent.get("id")
        if (
            learner_id is None
            or course_id is None
            or not isinstance(intent_id, str)
            or not intent_id
        ):
            logger.warning("Course purchase webhook missing learner_id, course_id or id")
            return "ignored"
        try:
            amount_cents = int(intent.get("amount_received") or intent.get("amount") or 0)
        except (TypeError, ValueError):
            logger.warning("Course purchase %s has a non-numeric amount", intent_id)
            return "ignored"

        if await self._repos.users.get_by_id(learner_id) is None:
            logger.warning("Course purchase for unknown learner %s", learner_id)
            return "ignored"
        try:
            enrollment, created = await self._enrollments.enroll(learner_id, course_id)
        except NotFoundError:
            logger.warning(
                "Course purchase for unknown course", extra={"course_id": str(course_id)}
            )
            return "ignored"

        if await self._repos.payments.get_by_gateway_id(intent_id) is None:
            transaction = PaymentTransaction.new(
                gateway=GATEWAY,
                gateway_transaction_id=intent_id,
                learner_id=learner_id,
                course_id=course_id,
                amount_cents=amount_cents,
                currency=str(intent.get("currency") or "usd"),
                completed_at=self._clock(),
                gateway_response=json.dumps(intent),
            )
            try:
                await self._repos.payments.add(transaction)
            except DuplicateTransactionError:
                logger.info("Payment %s already recorded by a concurrent delivery", intent_id)

        logger.info(
            "Course purchase %s processed (new enrollment=%s)",
            intent_id,
            created,
            extra={"enrollment_id": str(enrollment.id), "course_id": str(course_id)},
        )
        return "processed"
