"""PostgreSQL implementation of EnrollmentRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import EnrollmentRow
from app.models.enrollment import Enrollment, EnrollmentFilter, EnrollmentStatus
from app.services.errors import DuplicateEnrollmentError


class PgEnrollmentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, enrollment_id: UUID) -> Enrollment | None:
        stmt = select(EnrollmentRow).where(EnrollmentRow.id == enrollment_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_enrollment(row) if row else None

    async def get_for_update(self, enrollment_id: UUID) -> Enrollment | None:
        """Row-lock the enrollment until the request's transaction ends.

        Serializes concurrent certificate requests for one enrollment.
        """
        stmt = (
            select(EnrollmentRow)
            .where(EnrollmentRow.id == enrollment_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_enrollment(row) if row else None

    async def find(self, learner_id: UUID, course_id: UUID) -> Enrollment | None:
        stmt = select(EnrollmentRow).where(
            EnrollmentRow.learner_id == learner_id,
            EnrollmentRow.course_id == course_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_enrollment(row) if row else None

    async def add(self, enrollment: Enrollment) -> None:
        row = EnrollmentRow(
            id=enrollment.id,
            learner_id=enrollment.learner_id,
            course_id=enrollment.course_id,
            status=enrollment.status.value,
            enrolled_at=enrollment.enrolled_at,
            completed_at=enrollment.completed_at,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError as exc:
            if "uq_enrollments_learner_course" in str(exc.orig):
                raise DuplicateEnrollmentError(str(exc.orig)) from exc
            raise

    async def update_status(
        self,
        enrollment_id: UUID,
        status: EnrollmentStatus,
        completed_at: int | None = None,
    ) -> Enrollment | None:
        stmt = (
            update(EnrollmentRow)
            .where(EnrollmentRow.id == enrollment_id)
            .values(status=status.value, completed_at=completed_at)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get(enrollment_id)

    async def list(self, criteria: EnrollmentFilter) -> list[Enrollment]:
        base = select(EnrollmentRow)
        if criteria.learner_id is not None:
            base = base.where(EnrollmentRow.learner_id == criteria.learner_id)
        if criteria.course_id is not None:
            base = base.where(EnrollmentRow.course_id == criteria.course_id)
        if criteria.status is not None:
            base = base.where(EnrollmentRow.status == criteria.status.value)
        stmt = (
            base.order_by(EnrollmentRow.enrolled_at.desc())
            .limit(criteria.limit)
            .offset(criteria.offset)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_enrollment(r) for r in rows]


def _row_to_enrollment(row: EnrollmentRow) -> Enrollment:
    return Enrollment(
        id=row.id,
        learner_id=row.learner_id,
        course_id=row.course_id,
        status=EnrollmentStatus(row.status),
        enrolled_at=row.enrolled_at,
        completed_at=row.completed_at,
    )
