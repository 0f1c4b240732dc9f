"""Progress aggregation.

Derives a ProgressSnapshot for one enrollment from the learner's lesson
performance rows.  Read-only.  Completion is gated on distinct-lesson
coverage of the course's ACTIVE lessons, never on score, so acing a
subset of lessons cannot earn a certificate.
"""

from __future__ import annotations

import logging
from uuid import UUID

from app.core.metrics import PROGRESS_AGGREGATION_FAILURES
from app.models.progress import ProgressSnapshot
from app.repos.course_repo import CourseRepo
from app.repos.performance_repo import PerformanceRepo

logger = logging.getLogger(__name__)


class ProgressAggregator:
    def __init__(self, courses: CourseRepo, performance: PerformanceRepo) -> None:
        self._courses = courses
        self._performance = performance

    async def compute(
        self, enrollment_id: UUID, learner_id: UUID, course_id: UUID
    ) -> ProgressSnapshot:
        """Compute the learner's snapshot; never raises.

        Any data-access failure yields a zeroed snapshot, which callers
        read as "not complete".
        """
        try:
            return await self._compute(enrollment_id, learner_id, course_id)
        except Exception:
            PROGRESS_AGGREGATION_FAILURES.inc()
            logger.exception(
                "Progress aggregation failed, returning zeroed snapshot",
                extra={"enrollment_id": str(enrollment_id), "course_id": str(course_id)},
            )
            return ProgressSnapshot.zeroed(
                enrollment_id=enrollment_id,
                learner_id=learner_id,
                course_id=course_id,
            )

    async def _compute(
        self, enrollment_id: UUID, learner_id: UUID, course_id: UUID
    ) -> ProgressSnapshot:
        lesson_ids = await self._courses.list_active_lesson_ids(course_id)
        total = len(lesson_ids)
        summary = await self._performance.summarize(learner_id, lesson_ids)

        completed = min(summary.completed_lessons, total)
        percentage = round(100 * completed / total) if total > 0 else 0

        return ProgressSnapshot(
            enrollment_id=enrollment_id,
            learner_id=learner_id,
            course_id=course_id,
            total_lessons=total,
            completed_lessons=completed,
            progress_percentage=percentage,
            average_score=round(summary.average_percentage, 2),
            total_time_spent=summary.total_time_spent,
            is_complete=total > 0 and completed >= total,
        )
