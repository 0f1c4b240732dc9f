"""Domain exception -> HTTP translation shared by the routers."""

from __future__ import annotations

import logging

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse

from app.services.errors import (
    DomainError,
    InvalidTransitionError,
    IssuanceFailedError,
    NotCompleteError,
    NotFoundError,
    ValidationError,
    WebhookSignatureError,
)

logger = logging.getLogger(__name__)

_STATUS: dict[type[DomainError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    ValidationError: 422,
    WebhookSignatureError: status.HTTP_400_BAD_REQUEST,
}


def http_error(exc: DomainError) -> HTTPException:
    if isinstance(exc, IssuanceFailedError):
        # Internal detail stays in the log.
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="certificate issuance failed",
        )
    for exc_type, code in _STATUS.items():
        if isinstance(exc, exc_type):
            logger.warning("Request refused (%d): %s", code, exc)
            return HTTPException(status_code=code, detail=str(exc))
    logger.error("Unmapped domain error: %r", exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def not_complete_response(exc: NotCompleteError) -> JSONResponse:
    """400 carrying the current progress, so clients can show how far along."""
    snapshot = exc.snapshot
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": "course not yet complete",
            "progress_percentage": snapshot.progress_percentage,
            "completed_lessons": snapshot.completed_lessons,
            "total_lessons": snapshot.total_lessons,
        },
    )
