from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

MATERIAL_KINDS = frozenset({"video", "document", "interactive"})


@dataclass(frozen=True, slots=True)
class LessonPerformance:
    """One learner's outcome on one attempt of one lesson.

    Rows are keyed by (user_id, lesson_id, attempt_number).  For progress
    purposes a lesson counts as done if ANY of its attempts is completed.
    """

    id: UUID
    user_id: UUID
    lesson_id: UUID
    score: float
    max_score: float
    percentage: float  # 0..100
    time_spent_seconds: int
    is_completed: bool
    attempt_number: int
    started_at: int
    material_kind: str | None = None
    completed_at: int | None = None

    @staticmethod
    def new(
        *,
        user_id: UUID,
        lesson_id: UUID,
        score: float,
        max_score: float,
        percentage: float,
        time_spent_seconds: int,
        is_completed: bool,
        attempt_number: int,
        started_at: int,
        material_kind: str | None = None,
        completed_at: int | None = None,
    ) -> LessonPerformance:
        return LessonPerformance(
            id=uuid4(),
            user_id=user_id,
            lesson_id=lesson_id,
            score=score,
            max_score=max_score,
            percentage=percentage,
            time_spent_seconds=time_spent_seconds,
            is_completed=is_completed,
            attempt_number=attempt_number,
            started_at=started_at,
            material_kind=material_kind,
            completed_at=completed_at,
        )


@dataclass(frozen=True, slots=True)
class PerformanceSummary:
    """Aggregate over a learner's records for a set of lessons."""

    completed_lessons: int = 0  # distinct lessons with a completed attempt
    record_count: int = 0
    average_percentage: float = 0.0
    total_time_spent: int = 0


@dataclass(frozen=True, slots=True)
class PerformanceFilter:
    user_id: UUID
    lesson_id: UUID | None = None
    material_kind: str | None = None
    is_completed: bool | None = None
    limit: int = 50
    offset: int = 0

    def matches(self, record: LessonPerformance) -> bool:
        if record.user_id != self.user_id:
            return False
        if self.lesson_id is not None and record.lesson_id != self.lesson_id:
            return False
        if self.material_kind is not None and record.material_kind != self.material_kind:
            return False
        if self.is_completed is not None and record.is_completed != self.is_completed:
            return False
        return True
