from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request
from pydantic import BaseModel

from app.api.dependencies import get_payment_service
from app.api.errors import http_error
from app.services.errors import DomainError
from app.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/payments", tags=["payments"])


class WebhookAck(BaseModel):
    received: bool = True


@router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    service: Annotated[PaymentService, Depends(get_payment_service)],
    stripe_signature: Annotated[str | None, Header()] = None,
) -> WebhookAck:
    """Gateway callback.  Authenticated by signature, not by bearer token.

    The raw body is read unparsed: re-serialized JSON would not match
    the signature.
    """
    raw_body = await request.body()
    try:
        await service.handle_webhook(raw_body, stripe_signature)
    except DomainError as exc:
        raise http_error(exc) from None
    return WebhookAck()
