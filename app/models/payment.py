from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class PaymentTransaction:
    id: UUID
    gateway: str  # stripe
    gateway_transaction_id: str
    learner_id: UUID
    course_id: UUID
    amount_cents: int
    currency: str
    completed_at: int
    status: str = "completed"  # completed|refunded
    gateway_response: str | None = None

    @staticmethod
    def new(
        *,
        gateway: str,
        gateway_transaction_id: str,
        learner_id: UUID,
        course_id: UUID,
        amount_cents: int,
        currency: str,
        completed_at: int,
        gateway_response: str | None = None,
    ) -> PaymentTransaction:
        return PaymentTransaction(
            id=uuid4(),
            gateway=gateway,
            gateway_transaction_id=gateway_transaction_id,
            learner_id=learner_id,
            course_id=course_id,
            amount_cents=amount_cents,
            currency=currency.upper(),
            completed_at=completed_at,
            gateway_response=gateway_response,
        )
