"""PostgreSQL implementation of CourseRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import CourseModuleRow, CourseRow, InstitutionRow, LessonRow
from app.models.course import Course, CourseModule, Institution, Lesson


class PgCourseRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_course(self, course_id: UUID) -> Course | None:
        row = await self._session.get(CourseRow, course_id)
        if row is None:
            return None
        return Course(
            id=row.id,
            title=row.title,
            educator_id=row.educator_id,
            institution_id=row.institution_id,
            duration_hours=row.duration_hours,
            status=row.status,
        )

    async def get_institution(self, institution_id: UUID) -> Institution | None:
        row = await self._session.get(InstitutionRow, institution_id)
        if row is None:
            return None
        return Institution(id=row.id, name=row.name)

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        row = await self._session.get(LessonRow, lesson_id)
        if row is None:
            return None
        return Lesson(
            id=row.id,
            module_id=row.module_id,
            title=row.title,
            material_kind=row.material_kind,
            position=row.position,
            is_active=row.is_active,
        )

    async def course_id_for_lesson(self, lesson_id: UUID) -> UUID | None:
        stmt = (
            select(CourseModuleRow.course_id)
            .join(LessonRow, LessonRow.module_id == CourseModuleRow.id)
            .where(LessonRow.id == lesson_id)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_active_lesson_ids(self, course_id: UUID) -> list[UUID]:
        stmt = (
            select(LessonRow.id)
            .join(CourseModuleRow, LessonRow.module_id == CourseModuleRow.id)
            .where(CourseModuleRow.course_id == course_id, LessonRow.is_active.is_(True))
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def add_institution(self, institution: Institution) -> None:
        self._session.add(InstitutionRow(id=institution.id, name=institution.name))
        await self._session.flush()

    async def add_course(self, course: Course) -> None:
        self._session.add(
            CourseRow(
                id=course.id,
                title=course.title,
                educator_id=course.educator_id,
                institution_id=course.institution_id,
                duration_hours=course.duration_hours,
                status=course.status,
            )
        )
        await self._session.flush()

    async def add_module(self, module: CourseModule) -> None:
        self._session.add(
            CourseModuleRow(
                id=module.id,
                course_id=module.course_id,
                position=module.position,
                title=module.title,
            )
        )
        await self._session.flush()

    async def add_lesson(self, lesson: Lesson) -> None:
        self._session.add(
            LessonRow(
                id=lesson.id,
                module_id=lesson.module_id,
                title=lesson.title,
                material_kind=lesson.material_kind,
                position=lesson.position,
                is_active=lesson.is_active,
            )
        )
        await self._session.flush()
