from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Certificate:
    """Proof of completion, one per enrollment.

    Course, learner, educator and institution names are copied at issue
    time so later renames don't rewrite history.
    """

    id: UUID
    code: str
    enrollment_id: UUID
    learner_id: UUID
    course_id: UUID
    issued_at: int
    final_score: float
    total_hours: int
    course_title: str
    learner_name: str
    educator_name: str
    institution_name: str
    course_duration_hours: int | None = None

    @staticmethod
    def new(
        *,
        code: str,
        enrollment_id: UUID,
        learner_id: UUID,
        course_id: UUID,
        issued_at: int,
        final_score: float,
        total_hours: int,
        course_title: str,
        learner_name: str,
        educator_name: str,
        institution_name: str,
        course_duration_hours: int | None = None,
    ) -> Certificate:
        return Certificate(
            id=uuid4(),
            code=code,
            enrollment_id=enrollment_id,
            learner_id=learner_id,
            course_id=course_id,
            issued_at=issued_at,
            final_score=final_score,
            total_hours=total_hours,
            course_title=course_title,
            learner_name=learner_name,
            educator_name=educator_name,
            institution_name=institution_name,
            course_duration_hours=course_duration_hours,
        )
