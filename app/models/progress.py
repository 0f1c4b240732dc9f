from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    """Derived, never persisted: a learner's completion state for a course.

    ``is_complete`` requires full distinct-lesson coverage of a course that
    has at least one active lesson.  Scores never make a course complete.
    """

    enrollment_id: UUID
    learner_id: UUID
    course_id: UUID
    total_lessons: int
    completed_lessons: int
    progress_percentage: int
    average_score: float
    total_time_spent: int  # seconds
    is_complete: bool

    @staticmethod
    def zeroed(*, enrollment_id: UUID, learner_id: UUID, course_id: UUID) -> ProgressSnapshot:
        return ProgressSnapshot(
            enrollment_id=enrollment_id,
            learner_id=learner_id,
            course_id=course_id,
            total_lessons=0,
            completed_lessons=0,
            progress_percentage=0,
            average_score=0.0,
            total_time_spent=0,
            is_complete=False,
        )
