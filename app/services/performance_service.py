"""Lesson performance recording.

Writes LessonPerformance rows (the aggregator's only input) and then
lets the enrollment state machine check whether the write completed the
course.
"""

from __future__ import annotations

import datetime
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, replace
from uuid import UUID

from app.models.performance import (
    MATERIAL_KINDS,
    LessonPerformance,
    PerformanceFilter,
)
from app.repos.registry import Repos
from app.services.enrollment_service import EnrollmentService
from app.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


@dataclass(frozen=True, slots=True)
class PerformanceInput:
    user_id: UUID
    lesson_id: UUID
    score: float = 0
    max_score: float = 100
    percentage: float | None = None  # derived from score/max_score when omitted
    time_spent_seconds: int = 0
    is_completed: bool = False
    attempt_number: int = 1
    material_kind: str | None = None


def validate(data: PerformanceInput) -> float:
    """Check bounds; returns the effective percentage."""
    finite = [data.score, data.max_score]
    if data.percentage is not None:
        finite.append(data.percentage)
    if not all(math.isfinite(v) for v in finite):
        raise ValidationError("score, max_score and percentage must be finite numbers")
    if data.max_score <= 0:
        raise ValidationError("max_score must be greater than 0")
    if data.score < 0 or data.score > data.max_score:
        raise ValidationError("score must be non-negative and not exceed max_score")
    percentage = (
        data.percentage
        if data.percentage is not None
        else data.score * 100 / data.max_score
    )
    if not 0 <= percentage <= 100:
        raise ValidationError("percentage must be between 0 and 100")
    if data.time_spent_seconds < 0:
        raise ValidationError("time_spent_seconds must be non-negative")
    if data.attempt_number < 1:
        raise ValidationError("attempt_number must be at least 1")
    if data.material_kind is not None and data.material_kind not in MATERIAL_KINDS:
        raise ValidationError(f"unknown material kind: {data.material_kind}")
    return percentage


class PerformanceService:
    def __init__(
        self,
        repos: Repos,
        *,
        enrollments: EnrollmentService | None = None,
        clock: Callable[[], int] = _now,
    ) -> None:
        self._repos = repos
        self._enrollments = enrollments or EnrollmentService(repos, clock=clock)
        self._clock = clock

    async def record_performance(self, data: PerformanceInput) -> LessonPerformance:
        """Upsert the (user, lesson, attempt) row, then evaluate completion."""
        percentage = validate(data)

        lesson = await self._repos.courses.get_lesson(data.lesson_id)
        if lesson is None:
            raise NotFoundError("lesson", data.lesson_id)

        now = self._clock()
        completed_at = now if data.is_completed else None
        material_kind = data.material_kind or lesson.material_kind

        existing = await self._repos.performance.get_attempt(
            data.user_id, data.lesson_id, data.attempt_number
        )
        if existing is not None:
            record = replace(
                existing,
                score=data.score,
                max_score=data.max_score,
                percentage=percentage,
                time_spent_seconds=data.time_spent_seconds,
                is_completed=data.is_completed,
                material_kind=material_kind,
                completed_at=completed_at,
            )
            await self._repos.performance.update(record)
        else:
            record = LessonPerformance.new(
                user_id=data.user_id,
                lesson_id=data.lesson_id,
                score=data.score,
                max_score=data.max_score,
                percentage=percentage,
                time_spent_seconds=data.time_spent_seconds,
                is_completed=data.is_completed,
                attempt_number=data.attempt_number,
                started_at=now,
                material_kind=material_kind,
                completed_at=completed_at,
            )
            await self._repos.performance.add(record)

        logger.debug(
            "Recorded attempt %d on lesson %s (completed=%s)",
            record.attempt_number,
            record.lesson_id,
            record.is_completed,
        )

        if record.is_completed:
            await self._evaluate_course(data.user_id, data.lesson_id)
        return record

    async def list_performance(
        self, criteria: PerformanceFilter
    ) -> tuple[list[LessonPerformance], int]:
        return await self._repos.performance.list(criteria)

    async def _evaluate_course(self, user_id: UUID, lesson_id: UUID) -> None:
        course_id = await self._repos.courses.course_id_for_lesson(lesson_id)
        if course_id is None:
            return
        enrollment = await self._repos.enrollments.find(user_id, course_id)
        if enrollment is None:
            return
        await self._enrollments.evaluate_completion(enrollment)
