from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID, uuid4


class EnrollmentStatus(StrEnum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class Enrollment:
    """One learner's registration in one course.

    Status changes go through EnrollmentService only.  ``completed`` is
    terminal: nothing reopens a completed enrollment.
    """

    id: UUID
    learner_id: UUID
    course_id: UUID
    status: EnrollmentStatus
    enrolled_at: int
    completed_at: int | None = None

    @property
    def is_active(self) -> bool:
        return self.status == EnrollmentStatus.ACTIVE

    @staticmethod
    def new(*, learner_id: UUID, course_id: UUID, enrolled_at: int) -> Enrollment:
        return Enrollment(
            id=uuid4(),
            learner_id=learner_id,
            course_id=course_id,
            status=EnrollmentStatus.ACTIVE,
            enrolled_at=enrolled_at,
        )


@dataclass(frozen=True, slots=True)
class EnrollmentFilter:
    """Optional criteria for listing enrollments; None means "any"."""

    learner_id: UUID | None = None
    course_id: UUID | None = None
    status: EnrollmentStatus | None = None
    limit: int = 50
    offset: int = 0

    def matches(self, enrollment: Enrollment) -> bool:
        if self.learner_id is not None and enrollment.learner_id != self.learner_id:
            return False
        if self.course_id is not None and enrollment.course_id != self.course_id:
            return False
        if self.status is not None and enrollment.status != self.status:
            return False
        return True
