from __future__ import annotations

from typing import Protocol

from app.models.payment import PaymentTransaction
from app.services.errors import DuplicateTransactionError


class PaymentRepo(Protocol):
    async def get_by_gateway_id(
        self, gateway_transaction_id: str
    ) -> PaymentTransaction | None: ...
    async def add(self, transaction: PaymentTransaction) -> None: ...


class InMemoryPaymentRepo:
    def __init__(self) -> None:
        self._by_gateway_id: dict[str, PaymentTransaction] = {}

    async def get_by_gateway_id(
        self, gateway_transaction_id: str
    ) -> PaymentTransaction | None:
        return self._by_gateway_id.get(gateway_transaction_id)

    async def add(self, transaction: PaymentTransaction) -> None:
        if transaction.gateway_transaction_id in self._by_gateway_id:
            raise DuplicateTransactionError(transaction.gateway_transaction_id)
        self._by_gateway_id[transaction.gateway_transaction_id] = transaction
