"""Enrollment endpoints: upsert, listing, progress, certificate, status."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel

from app.api.certificates import CertificateOut
from app.api.dependencies import (
    CurrentUser,
    ensure_can_act_for,
    get_enrollment_service,
    require_admin,
)
from app.api.errors import http_error, not_complete_response
from app.models.enrollment import Enrollment, EnrollmentFilter, EnrollmentStatus
from app.models.principal import Principal
from app.models.progress import ProgressSnapshot
from app.models.user import ROLE_LEARNER
from app.services.enrollment_service import EnrollmentService
from app.services.errors import DomainError, NotCompleteError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])

Service = Annotated[EnrollmentService, Depends(get_enrollment_service)]


class EnrollmentIn(BaseModel):
    course_id: UUID
    learner_id: UUID | None = None  # admins only; defaults to the caller


class EnrollmentOut(BaseModel):
    id: UUID
    learner_id: UUID
    course_id: UUID
    status: EnrollmentStatus
    enrolled_at: int
    completed_at: int | None = None

    @staticmethod
    def of(e: Enrollment) -> EnrollmentOut:
        return EnrollmentOut(
            id=e.id,
            learner_id=e.learner_id,
            course_id=e.course_id,
            status=e.status,
            enrolled_at=e.enrolled_at,
            completed_at=e.completed_at,
        )


class ProgressOut(BaseModel):
    enrollment_id: UUID
    learner_id: UUID
    course_id: UUID
    total_lessons: int
    completed_lessons: int
    progress_percentage: int
    average_score: float
    total_time_spent: int
    is_complete: bool

    @staticmethod
    def of(s: ProgressSnapshot) -> ProgressOut:
        return ProgressOut(
            enrollment_id=s.enrollment_id,
            learner_id=s.learner_id,
            course_id=s.course_id,
            total_lessons=s.total_lessons,
            completed_lessons=s.completed_lessons,
            progress_percentage=s.progress_percentage,
            average_score=s.average_score,
            total_time_spent=s.total_time_spent,
            is_complete=s.is_complete,
        )


class IssueOut(BaseModel):
    created: bool
    certificate: CertificateOut


class StatusIn(BaseModel):
    status: EnrollmentStatus


async def _load_visible(
    service: EnrollmentService, enrollment_id: UUID, principal: Principal
) -> Enrollment:
    try:
        enrollment = await service.get(enrollment_id)
    except DomainError as exc:
        raise http_error(exc) from None
    ensure_can_act_for(principal, enrollment.learner_id)
    return enrollment


# ---------------------------------------------------------------------------
# POST /v1/enrollments
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=EnrollmentOut,
    status_code=status.HTTP_201_CREATED,
    responses={200: {"description": "Already enrolled"}},
)
async def create_enrollment(
    body: EnrollmentIn,
    response: Response,
    principal: CurrentUser,
    service: Service,
) -> EnrollmentOut:
    learner_id = body.learner_id or UUID(principal.user_id)
    if learner_id == UUID(principal.user_id):
        if not principal.has_role(ROLE_LEARNER):
            logger.warning("Enrollment refused: user=%s is not a learner", principal.user_id)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only learners can enroll",
            )
    else:
        ensure_can_act_for(principal, learner_id)

    try:
        enrollment, created = await service.enroll(learner_id, body.course_id)
    except DomainError as exc:
        raise http_error(exc) from None

    if not created:
        response.status_code = status.HTTP_200_OK
    return EnrollmentOut.of(enrollment)


# ---------------------------------------------------------------------------
# GET /v1/enrollments
# ---------------------------------------------------------------------------


@router.get("", response_model=list[EnrollmentOut])
async def list_enrollments(
    principal: CurrentUser,
    service: Service,
    learner_id: UUID | None = None,
    course_id: UUID | None = None,
    status_: Annotated[EnrollmentStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[EnrollmentOut]:
    if not principal.is_admin():
        # Non-admins only ever see their own enrollments.
        learner_id = UUID(principal.user_id)
    criteria = EnrollmentFilter(
        learner_id=learner_id,
        course_id=course_id,
        status=status_,
        limit=limit,
        offset=offset,
    )
    return [EnrollmentOut.of(e) for e in await service.list_enrollments(criteria)]


# ---------------------------------------------------------------------------
# GET /v1/enrollments/{id}, /progress
# ---------------------------------------------------------------------------


@router.get("/{enrollment_id}", response_model=EnrollmentOut)
async def get_enrollment(
    enrollment_id: UUID,
    principal: CurrentUser,
    service: Service,
) -> EnrollmentOut:
    return EnrollmentOut.of(await _load_visible(service, enrollment_id, principal))


@router.get("/{enrollment_id}/progress", response_model=ProgressOut)
async def get_progress(
    enrollment_id: UUID,
    principal: CurrentUser,
    service: Service,
) -> ProgressOut:
    await _load_visible(service, enrollment_id, principal)
    try:
        snapshot = await service.get_progress(enrollment_id)
    except DomainError as exc:
        raise http_error(exc) from None
    return ProgressOut.of(snapshot)


# ---------------------------------------------------------------------------
# POST /v1/enrollments/{id}/certificate
# ---------------------------------------------------------------------------


@router.post(
    "/{enrollment_id}/certificate",
    response_model=IssueOut,
    responses={
        400: {"description": "Course not complete; body carries current progress"},
        409: {"description": "Enrollment is paused or cancelled"},
    },
)
async def request_certificate(
    enrollment_id: UUID,
    principal: CurrentUser,
    service: Service,
):
    try:
        enrollment = await service.get(enrollment_id)
    except DomainError as exc:
        raise http_error(exc) from None
    if principal.user_id != str(enrollment.learner_id):
        logger.warning(
            "Certificate refused: user=%s does not own enrollment",
            principal.user_id,
            extra={"enrollment_id": str(enrollment_id)},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the enrolled learner can request this certificate",
        )

    try:
        result = await service.request_certificate(enrollment_id)
    except NotCompleteError as exc:
        return not_complete_response(exc)
    except DomainError as exc:
        raise http_error(exc) from None

    return IssueOut(
        created=result.created,
        certificate=CertificateOut.of(result.certificate),
    )


# ---------------------------------------------------------------------------
# PATCH /v1/enrollments/{id}/status  (admin)
# ---------------------------------------------------------------------------


@router.patch("/{enrollment_id}/status", response_model=EnrollmentOut)
async def set_status(
    enrollment_id: UUID,
    body: StatusIn,
    principal: Annotated[Principal, Depends(require_admin)],
    service: Service,
) -> EnrollmentOut:
    logger.info(
        "Admin %s sets status %s",
        principal.user_id,
        body.status.value,
        extra={"enrollment_id": str(enrollment_id)},
    )
    try:
        enrollment = await service.set_status(enrollment_id, body.status)
    except DomainError as exc:
        raise http_error(exc) from None
    return EnrollmentOut.of(enrollment)
