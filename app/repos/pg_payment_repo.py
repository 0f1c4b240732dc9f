"""PostgreSQL implementation of PaymentRepo."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import PaymentTransactionRow
from app.models.payment import PaymentTransaction
from app.services.errors import DuplicateTransactionError


class PgPaymentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_gateway_id(
        self, gateway_transaction_id: str
    ) -> PaymentTransaction | None:
        stmt = select(PaymentTransactionRow).where(
            PaymentTransactionRow.gateway_transaction_id == gateway_transaction_id
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return PaymentTransaction(
            id=row.id,
            gateway=row.gateway,
            gateway_transaction_id=row.gateway_transaction_id,
            learner_id=row.learner_id,
            course_id=row.course_id,
            amount_cents=row.amount_cents,
            currency=row.currency,
            completed_at=row.completed_at,
            status=row.status,
            gateway_response=row.gateway_response,
        )

    async def add(self, transaction: PaymentTransaction) -> None:
        row = PaymentTransactionRow(
            id=transaction.id,
            gateway=transaction.gateway,
            gateway_transaction_id=transaction.gateway_transaction_id,
            learner_id=transaction.learner_id,
            course_id=transaction.course_id,
            amount_cents=transaction.amount_cents,
            currency=transaction.currency,
            status=transaction.status,
            completed_at=transaction.completed_at,
            gateway_response=transaction.gateway_response,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError as exc:
            if "gateway_transaction_id" in str(exc.orig):
                raise DuplicateTransactionError(
                    transaction.gateway_transaction_id
                ) from exc
            raise
