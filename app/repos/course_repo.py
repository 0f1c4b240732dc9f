"""Course catalogue repository.

The catalogue itself is managed elsewhere; this service only needs to
read it (lesson counts, certificate snapshot data).  The ``add_*``
methods exist for seeding and tests.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.models.course import Course, CourseModule, Institution, Lesson


class CourseRepo(Protocol):
    async def get_course(self, course_id: UUID) -> Course | None: ...
    async def get_institution(self, institution_id: UUID) -> Institution | None: ...
    async def get_lesson(self, lesson_id: UUID) -> Lesson | None: ...
    async def course_id_for_lesson(self, lesson_id: UUID) -> UUID | None: ...
    async def list_active_lesson_ids(self, course_id: UUID) -> list[UUID]: ...
    async def add_institution(self, institution: Institution) -> None: ...
    async def add_course(self, course: Course) -> None: ...
    async def add_module(self, module: CourseModule) -> None: ...
    async def add_lesson(self, lesson: Lesson) -> None: ...


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._institutions: dict[UUID, Institution] = {}
        self._courses: dict[UUID, Course] = {}
        self._modules: dict[UUID, CourseModule] = {}
        self._lessons: dict[UUID, Lesson] = {}

    async def get_course(self, course_id: UUID) -> Course | None:
        return self._courses.get(course_id)

    async def get_institution(self, institution_id: UUID) -> Institution | None:
        return self._institutions.get(institution_id)

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        return self._lessons.get(lesson_id)

    async def course_id_for_lesson(self, lesson_id: UUID) -> UUID | None:
        lesson = self._lessons.get(lesson_id)
        if lesson is None:
            return None
        module = self._modules.get(lesson.module_id)
        return module.course_id if module else None

    async def list_active_lesson_ids(self, course_id: UUID) -> list[UUID]:
        module_ids = {m.id for m in self._modules.values() if m.course_id == course_id}
        return [
            lesson.id
            for lesson in self._lessons.values()
            if lesson.module_id in module_ids and lesson.is_active
        ]

    async def add_institution(self, institution: Institution) -> None:
        self._institutions[institution.id] = institution

    async def add_course(self, course: Course) -> None:
        self._courses[course.id] = course

    async def add_module(self, module: CourseModule) -> None:
        if module.course_id not in self._courses:
            raise ValueError("course does not exist")
        self._modules[module.id] = module

    async def add_lesson(self, lesson: Lesson) -> None:
        if lesson.module_id not in self._modules:
            raise ValueError("module does not exist")
        self._lessons[lesson.id] = lesson
