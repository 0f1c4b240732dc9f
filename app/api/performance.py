"""Lesson performance endpoints.

Recording a completed attempt may complete the learner's enrollment and
issue the certificate as a side effect; the response only reports the
stored record.
"""

from __future__ import annotations

from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from app.api.dependencies import CurrentUser, ensure_can_act_for, get_performance_service
from app.api.errors import http_error
from app.models.performance import LessonPerformance, PerformanceFilter
from app.services.errors import DomainError
from app.services.performance_service import PerformanceInput, PerformanceService

router = APIRouter(prefix="/v1/performance", tags=["performance"])

Service = Annotated[PerformanceService, Depends(get_performance_service)]
MaterialKind = Literal["video", "document", "interactive"]


class PerformanceIn(BaseModel):
    lesson_id: UUID
    user_id: UUID | None = None  # admins only; defaults to the caller
    score: float = Field(0, allow_inf_nan=False)
    max_score: float = Field(100, allow_inf_nan=False)
    percentage: float | None = Field(None, allow_inf_nan=False)
    time_spent_seconds: int = 0
    is_completed: bool = False
    attempt_number: int = 1
    material_kind: MaterialKind | None = None


class PerformanceOut(BaseModel):
    id: UUID
    user_id: UUID
    lesson_id: UUID
    material_kind: str | None
    score: float
    max_score: float
    percentage: float
    time_spent_seconds: int
    is_completed: bool
    attempt_number: int
    started_at: int
    completed_at: int | None

    @staticmethod
    def of(r: LessonPerformance) -> PerformanceOut:
        return PerformanceOut(
            id=r.id,
            user_id=r.user_id,
            lesson_id=r.lesson_id,
            material_kind=r.material_kind,
            score=r.score,
            max_score=r.max_score,
            percentage=r.percentage,
            time_spent_seconds=r.time_spent_seconds,
            is_completed=r.is_completed,
            attempt_number=r.attempt_number,
            started_at=r.started_at,
            completed_at=r.completed_at,
        )


class PerformancePage(BaseModel):
    items: list[PerformanceOut]
    total: int
    limit: int
    offset: int


@router.post("", response_model=PerformanceOut, status_code=status.HTTP_201_CREATED)
async def record_performance(
    body: PerformanceIn,
    principal: CurrentUser,
    service: Service,
) -> PerformanceOut:
    user_id = body.user_id or UUID(principal.user_id)
    ensure_can_act_for(principal, user_id)
    data = PerformanceInput(
        user_id=user_id,
        lesson_id=body.lesson_id,
        score=body.score,
        max_score=body.max_score,
        percentage=body.percentage,
        time_spent_seconds=body.time_spent_seconds,
        is_completed=body.is_completed,
        attempt_number=body.attempt_number,
        material_kind=body.material_kind,
    )
    try:
        record = await service.record_performance(data)
    except DomainError as exc:
        raise http_error(exc) from None
    return PerformanceOut.of(record)


@router.get("/users/{user_id}", response_model=PerformancePage)
async def list_performance(
    user_id: UUID,
    principal: CurrentUser,
    service: Service,
    lesson_id: UUID | None = None,
    material_kind: MaterialKind | None = None,
    is_completed: bool | None = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> PerformancePage:
    ensure_can_act_for(principal, user_id)
    criteria = PerformanceFilter(
        user_id=user_id,
        lesson_id=lesson_id,
        material_kind=material_kind,
        is_completed=is_completed,
        limit=limit,
        offset=offset,
    )
    records, total = await service.list_performance(criteria)
    return PerformancePage(
        items=[PerformanceOut.of(r) for r in records],
        total=total,
        limit=limit,
        offset=offset,
    )
