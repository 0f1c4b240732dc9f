"""PostgreSQL implementation of CertificateRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import CertificateRow
from app.models.certificate import Certificate
from app.services.errors import CertificateCodeCollisionError, DuplicateCertificateError


class PgCertificateRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_enrollment(self, enrollment_id: UUID) -> Certificate | None:
        stmt = select(CertificateRow).where(CertificateRow.enrollment_id == enrollment_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_certificate(row) if row else None

    async def get_by_code(self, code: str) -> Certificate | None:
        stmt = select(CertificateRow).where(CertificateRow.code == code)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_certificate(row) if row else None

    async def add(self, certificate: Certificate) -> None:
        row = CertificateRow(
            id=certificate.id,
            code=certificate.code,
            enrollment_id=certificate.enrollment_id,
            learner_id=certificate.learner_id,
            course_id=certificate.course_id,
            issued_at=certificate.issued_at,
            final_score=certificate.final_score,
            total_hours=certificate.total_hours,
            course_title=certificate.course_title,
            course_duration_hours=certificate.course_duration_hours,
            learner_name=certificate.learner_name,
            educator_name=certificate.educator_name,
            institution_name=certificate.institution_name,
        )
        # SAVEPOINT: a unique violation must not poison the outer transaction,
        # the issuer still needs it to re-read the winning row.
        try:
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError as exc:
            detail = str(exc.orig)
            if "uq_certificates_enrollment_id" in detail:
                raise DuplicateCertificateError(str(certificate.enrollment_id)) from exc
            if "uq_certificates_code" in detail:
                raise CertificateCodeCollisionError(certificate.code) from exc
            raise


def _row_to_certificate(row: CertificateRow) -> Certificate:
    return Certificate(
        id=row.id,
        code=row.code,
        enrollment_id=row.enrollment_id,
        learner_id=row.learner_id,
        course_id=row.course_id,
        issued_at=row.issued_at,
        final_score=row.final_score,
        total_hours=row.total_hours,
        course_title=row.course_title,
        course_duration_hours=row.course_duration_hours,
        learner_name=row.learner_name,
        educator_name=row.educator_name,
        institution_name=row.institution_name,
    )
