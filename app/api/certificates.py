"""Public certificate verification.

Anyone holding a certificate code (an employer reading a CV, say) can
check it without an account.  Codes carry 64 random bits, so they cannot
be enumerated.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.dependencies import get_certificate_issuer
from app.api.errors import http_error
from app.models.certificate import Certificate
from app.services.certificate_service import CertificateIssuer
from app.services.errors import DomainError

router = APIRouter(prefix="/v1/certificates", tags=["certificates"])


class CertificateOut(BaseModel):
    id: UUID
    code: str
    enrollment_id: UUID
    learner_id: UUID
    course_id: UUID
    issued_at: int
    final_score: float
    total_hours: int
    course_title: str
    course_duration_hours: int | None = None
    learner_name: str
    educator_name: str
    institution_name: str

    @staticmethod
    def of(c: Certificate) -> CertificateOut:
        return CertificateOut(
            id=c.id,
            code=c.code,
            enrollment_id=c.enrollment_id,
            learner_id=c.learner_id,
            course_id=c.course_id,
            issued_at=c.issued_at,
            final_score=c.final_score,
            total_hours=c.total_hours,
            course_title=c.course_title,
            course_duration_hours=c.course_duration_hours,
            learner_name=c.learner_name,
            educator_name=c.educator_name,
            institution_name=c.institution_name,
        )


class VerificationOut(BaseModel):
    valid: bool
    code: str
    issued_at: int
    course_title: str
    learner_name: str
    educator_name: str
    institution_name: str
    final_score: float
    total_hours: int


@router.get("/{code}/verify", response_model=VerificationOut)
async def verify_certificate(
    code: str,
    issuer: Annotated[CertificateIssuer, Depends(get_certificate_issuer)],
) -> VerificationOut:
    try:
        c = await issuer.verify(code)
    except DomainError as exc:
        raise http_error(exc) from None
    return VerificationOut(
        valid=True,
        code=c.code,
        issued_at=c.issued_at,
        course_title=c.course_title,
        learner_name=c.learner_name,
        educator_name=c.educator_name,
        institution_name=c.institution_name,
        final_score=c.final_score,
        total_hours=c.total_hours,
    )
