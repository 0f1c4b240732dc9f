from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Institution:
    id: UUID
    name: str

    @staticmethod
    def new(*, name: str) -> Institution:
        return Institution(id=uuid4(), name=name)


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    title: str
    educator_id: UUID | None = None
    institution_id: UUID | None = None
    duration_hours: int | None = None
    status: str = "published"  # draft|published|archived

    @staticmethod
    def new(
        *,
        title: str,
        educator_id: UUID | None = None,
        institution_id: UUID | None = None,
        duration_hours: int | None = None,
    ) -> Course:
        return Course(
            id=uuid4(),
            title=title,
            educator_id=educator_id,
            institution_id=institution_id,
            duration_hours=duration_hours,
        )


@dataclass(frozen=True, slots=True)
class CourseModule:
    id: UUID
    course_id: UUID
    position: int
    title: str

    @staticmethod
    def new(*, course_id: UUID, position: int, title: str) -> CourseModule:
        return CourseModule(
            id=uuid4(), course_id=course_id, position=position, title=title
        )


@dataclass(frozen=True, slots=True)
class Lesson:
    """A unit of study inside a module.

    Only active lessons count towards course completion; deactivating a
    lesson shrinks the denominator of every learner's progress.
    """

    id: UUID
    module_id: UUID
    title: str
    material_kind: str = "video"  # video|document|interactive
    position: int = 0
    is_active: bool = True

    @staticmethod
    def new(
        *,
        module_id: UUID,
        title: str,
        material_kind: str = "video",
        position: int = 0,
        is_active: bool = True,
    ) -> Lesson:
        return Lesson(
            id=uuid4(),
            module_id=module_id,
            title=title,
            material_kind=material_kind,
            position=position,
            is_active=is_active,
        )
