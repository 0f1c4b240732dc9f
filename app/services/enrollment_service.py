"""Enrollment lifecycle.

States: active, completed, paused, cancelled.

    active --(progress complete)--> completed      (this service, one-way)
    active <--> paused                             (admin)
    active | paused --> cancelled                  (admin)

``completed`` and ``cancelled`` are terminal.  Completion always goes
through ``_complete``, which flips the status and hands over to the
CertificateIssuer.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable
from uuid import UUID

from app.core.metrics import ENROLLMENT_TRANSITIONS
from app.models.enrollment import Enrollment, EnrollmentFilter, EnrollmentStatus
from app.models.progress import ProgressSnapshot
from app.repos.registry import Repos
from app.services.certificate_service import CertificateIssuer, IssueResult
from app.services.errors import (
    DuplicateEnrollmentError,
    InvalidTransitionError,
    IssuanceFailedError,
    NotCompleteError,
    NotFoundError,
)
from app.services.progress_service import ProgressAggregator

logger = logging.getLogger(__name__)

# Transitions an admin may request.  Completion is not among them.
ADMIN_TRANSITIONS: dict[EnrollmentStatus, frozenset[EnrollmentStatus]] = {
    EnrollmentStatus.ACTIVE: frozenset(
        {EnrollmentStatus.PAUSED, EnrollmentStatus.CANCELLED}
    ),
    EnrollmentStatus.PAUSED: frozenset(
        {EnrollmentStatus.ACTIVE, EnrollmentStatus.CANCELLED}
    ),
    EnrollmentStatus.COMPLETED: frozenset(),
    EnrollmentStatus.CANCELLED: frozenset(),
}


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


class EnrollmentService:
    def __init__(
        self,
        repos: Repos,
        *,
        aggregator: ProgressAggregator | None = None,
        issuer: CertificateIssuer | None = None,
        clock: Callable[[], int] = _now,
    ) -> None:
        self._repos = repos
        self._aggregator = aggregator or ProgressAggregator(repos.courses, repos.performance)
        self._issuer = issuer or CertificateIssuer(repos, self._aggregator, clock=clock)
        self._clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, enrollment_id: UUID) -> Enrollment:
        enrollment = await self._repos.enrollments.get(enrollment_id)
        if enrollment is None:
            raise NotFoundError("enrollment", enrollment_id)
        return enrollment

    async def list_enrollments(self, criteria: EnrollmentFilter) -> list[Enrollment]:
        return await self._repos.enrollments.list(criteria)

    async def get_progress(self, enrollment_id: UUID) -> ProgressSnapshot:
        enrollment = await self.get(enrollment_id)
        return await self._aggregator.compute(
            enrollment.id, enrollment.learner_id, enrollment.course_id
        )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def enroll(self, learner_id: UUID, course_id: UUID) -> tuple[Enrollment, bool]:
        """Upsert on (learner, course).  Returns (enrollment, created)."""
        if await self._repos.courses.get_course(course_id) is None:
            raise NotFoundError("course", course_id)

        existing = await self._repos.enrollments.find(learner_id, course_id)
        if existing is not None:
            return existing, False

        enrollment = Enrollment.new(
            learner_id=learner_id, course_id=course_id, enrolled_at=self._clock()
        )
        try:
            await self._repos.enrollments.add(enrollment)
        except DuplicateEnrollmentError:
            # Lost an insert race; the other request's row is the enrollment.
            winner = await self._repos.enrollments.find(learner_id, course_id)
            if winner is None:
                raise
            return winner, False

        logger.info(
            "Learner %s enrolled",
            learner_id,
            extra={"enrollment_id": str(enrollment.id), "course_id": str(course_id)},
        )
        return enrollment, True

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def set_status(
        self, enrollment_id: UUID, target: EnrollmentStatus
    ) -> Enrollment:
        enrollment = await self._repos.enrollments.get_for_update(enrollment_id)
        if enrollment is None:
            raise NotFoundError("enrollment", enrollment_id)
        if enrollment.status == target:
            return enrollment
        if target not in ADMIN_TRANSITIONS[enrollment.status]:
            raise InvalidTransitionError(enrollment.status.value, target.value)

        updated = await self._repos.enrollments.update_status(enrollment_id, target)
        if updated is None:
            raise NotFoundError("enrollment", enrollment_id)
        self._record_transition(enrollment, target)
        return updated

    async def request_certificate(self, enrollment_id: UUID) -> IssueResult:
        """Explicit trigger: complete the enrollment and issue its certificate.

        Raises NotFoundError, InvalidTransitionError (paused/cancelled),
        NotCompleteError (with the current snapshot) or IssuanceFailedError.
        Calling again on a completed enrollment returns the same certificate.
        """
        enrollment = await self._repos.enrollments.get_for_update(enrollment_id)
        if enrollment is None:
            raise NotFoundError("enrollment", enrollment_id)

        if enrollment.status == EnrollmentStatus.COMPLETED:
            # Also covers a previous run that flipped the status but failed to issue.
            return await self._issuer.issue(
                enrollment.id, enrollment.learner_id, enrollment.course_id
            )
        if enrollment.status != EnrollmentStatus.ACTIVE:
            raise InvalidTransitionError(
                enrollment.status.value, EnrollmentStatus.COMPLETED.value
            )

        snapshot = await self._aggregator.compute(
            enrollment.id, enrollment.learner_id, enrollment.course_id
        )
        if not snapshot.is_complete:
            logger.warning(
                "Certificate refused: %d/%d lessons complete",
                snapshot.completed_lessons,
                snapshot.total_lessons,
                extra={"enrollment_id": str(enrollment.id)},
            )
            raise NotCompleteError(snapshot)

        return await self._complete(enrollment)

    async def evaluate_completion(self, enrollment: Enrollment) -> IssueResult | None:
        """Implicit trigger, run after new performance is recorded.

        Completes and certifies an active enrollment whose progress is now
        complete.  Issuance failures are logged, not raised: the write
        that triggered the evaluation must still succeed, and the learner
        can retry through request_certificate.
        """
        current = await self._repos.enrollments.get_for_update(enrollment.id)
        if current is None or current.status != EnrollmentStatus.ACTIVE:
            return None

        snapshot = await self._aggregator.compute(
            current.id, current.learner_id, current.course_id
        )
        if not snapshot.is_complete:
            return None

        try:
            return await self._complete(current)
        except (IssuanceFailedError, NotFoundError):
            logger.exception(
                "Automatic certificate issuance failed",
                extra={"enrollment_id": str(current.id), "course_id": str(current.course_id)},
            )
            return None

    async def _complete(self, enrollment: Enrollment) -> IssueResult:
        updated = await self._repos.enrollments.update_status(
            enrollment.id, EnrollmentStatus.COMPLETED, completed_at=self._clock()
        )
        if updated is None:
            raise NotFoundError("enrollment", enrollment.id)
        self._record_transition(enrollment, EnrollmentStatus.COMPLETED)
        return await self._issuer.issue(
            enrollment.id, enrollment.learner_id, enrollment.course_id
        )

    @staticmethod
    def _record_transition(enrollment: Enrollment, target: EnrollmentStatus) -> None:
        ENROLLMENT_TRANSITIONS.labels(
            from_status=enrollment.status.value, to_status=target.value
        ).inc()
        logger.info(
            "Enrollment %s -> %s",
            enrollment.status.value,
            target.value,
            extra={"enrollment_id": str(enrollment.id), "course_id": str(enrollment.course_id)},
        )
