"""Certificate issuance.

``CertificateIssuer.issue`` is idempotent per enrollment: the first call
inserts, every later call (or a concurrent loser) gets the same row back.
The unique constraint on ``certificates.enrollment_id`` is what makes this
hold under concurrency; the read-before-insert is only a fast path.

Callers must already have established that the enrollment is complete.
"""

from __future__ import annotations

import datetime
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID

from app.core.metrics import CERTIFICATES_ISSUED
from app.models.certificate import Certificate
from app.repos.registry import Repos
from app.services.errors import (
    CertificateCodeCollisionError,
    DuplicateCertificateError,
    IssuanceFailedError,
    NotFoundError,
)
from app.services.progress_service import ProgressAggregator

logger = logging.getLogger(__name__)

CODE_PREFIX = "CERT-"
MAX_CODE_ATTEMPTS = 5
DEFAULT_INSTITUTION_NAME = "Independent"


def generate_certificate_code() -> str:
    """``CERT-`` + 16 uppercase hex chars (64 random bits)."""
    return CODE_PREFIX + secrets.token_hex(8).upper()


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


@dataclass(frozen=True, slots=True)
class IssueResult:
    created: bool
    certificate: Certificate


class CertificateIssuer:
    def __init__(
        self,
        repos: Repos,
        aggregator: ProgressAggregator | None = None,
        *,
        code_factory: Callable[[], str] = generate_certificate_code,
        clock: Callable[[], int] = _now,
    ) -> None:
        self._repos = repos
        self._aggregator = aggregator or ProgressAggregator(repos.courses, repos.performance)
        self._code_factory = code_factory
        self._clock = clock

    async def issue(
        self, enrollment_id: UUID, learner_id: UUID, course_id: UUID
    ) -> IssueResult:
        existing = await self._repos.certificates.get_by_enrollment(enrollment_id)
        if existing is not None:
            CERTIFICATES_ISSUED.labels(outcome="existing").inc()
            return IssueResult(created=False, certificate=existing)

        course = await self._repos.courses.get_course(course_id)
        if course is None:
            raise NotFoundError("course", course_id)
        learner = await self._repos.users.get_by_id(learner_id)
        if learner is None:
            raise NotFoundError("learner", learner_id)

        educator_name = ""
        if course.educator_id is not None:
            educator = await self._repos.users.get_by_id(course.educator_id)
            if educator is not None:
                educator_name = educator.display_name

        institution_name = DEFAULT_INSTITUTION_NAME
        if course.institution_id is not None:
            institution = await self._repos.courses.get_institution(course.institution_id)
            if institution is not None:
                institution_name = institution.name

        # Final grade reflects the state that triggered issuance.
        snapshot = await self._aggregator.compute(enrollment_id, learner_id, course_id)

        for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
            certificate = Certificate.new(
                code=self._code_factory(),
                enrollment_id=enrollment_id,
                learner_id=learner_id,
                course_id=course_id,
                issued_at=self._clock(),
                final_score=snapshot.average_score,
                total_hours=round(snapshot.total_time_spent / 3600),
                course_title=course.title,
                course_duration_hours=course.duration_hours,
                learner_name=learner.display_name,
                educator_name=educator_name,
                institution_name=institution_name,
            )
            try:
                await self._repos.certificates.add(certificate)
            except DuplicateCertificateError:
                return await self._race_winner(enrollment_id)
            except CertificateCodeCollisionError:
                logger.warning(
                    "Certificate code collision (attempt %d/%d)",
                    attempt,
                    MAX_CODE_ATTEMPTS,
                    extra={"enrollment_id": str(enrollment_id)},
                )
                continue
            except Exception as exc:
                logger.exception(
                    "Certificate insert failed",
                    extra={"enrollment_id": str(enrollment_id)},
                )
                raise IssuanceFailedError(str(exc)) from exc

            CERTIFICATES_ISSUED.labels(outcome="created").inc()
            logger.info(
                "Certificate %s issued",
                certificate.code,
                extra={"enrollment_id": str(enrollment_id), "course_id": str(course_id)},
            )
            return IssueResult(created=True, certificate=certificate)

        raise IssuanceFailedError(
            f"no unique certificate code after {MAX_CODE_ATTEMPTS} attempts"
        )

    async def _race_winner(self, enrollment_id: UUID) -> IssueResult:
        winner = await self._repos.certificates.get_by_enrollment(enrollment_id)
        if winner is None:
            # Constraint fired but the row isn't visible to us.
            raise IssuanceFailedError(
                f"certificate for enrollment {enrollment_id} conflicted but was not found"
            )
        CERTIFICATES_ISSUED.labels(outcome="race").inc()
        logger.info(
            "Concurrent issuance lost the race, returning existing certificate",
            extra={"enrollment_id": str(enrollment_id)},
        )
        return IssueResult(created=False, certificate=winner)

    async def verify(self, code: str) -> Certificate:
        certificate = await self._repos.certificates.get_by_code(code.strip().upper())
        if certificate is None:
            raise NotFoundError("certificate", code)
        return certificate
