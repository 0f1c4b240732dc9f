from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.models.enrollment import Enrollment, EnrollmentFilter, EnrollmentStatus
from app.services.errors import DuplicateEnrollmentError


class EnrollmentRepo(Protocol):
    async def get(self, enrollment_id: UUID) -> Enrollment | None: ...
    async def get_for_update(self, enrollment_id: UUID) -> Enrollment | None: ...
    async def find(self, learner_id: UUID, course_id: UUID) -> Enrollment | None: ...
    async def add(self, enrollment: Enrollment) -> None: ...
    async def update_status(
        self,
        enrollment_id: UUID,
        status: EnrollmentStatus,
        completed_at: int | None = None,
    ) -> Enrollment | None: ...
    async def list(self, criteria: EnrollmentFilter) -> list[Enrollment]: ...


class InMemoryEnrollmentRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Enrollment] = {}
        self._by_pair: dict[tuple[UUID, UUID], UUID] = {}

    async def get(self, enrollment_id: UUID) -> Enrollment | None:
        return self._by_id.get(enrollment_id)

    async def get_for_update(self, enrollment_id: UUID) -> Enrollment | None:
        # Single event loop, no awaits between read and write: nothing to lock.
        return self._by_id.get(enrollment_id)

    async def find(self, learner_id: UUID, course_id: UUID) -> Enrollment | None:
        eid = self._by_pair.get((learner_id, course_id))
        return self._by_id.get(eid) if eid else None

    async def add(self, enrollment: Enrollment) -> None:
        key = (enrollment.learner_id, enrollment.course_id)
        if key in self._by_pair:
            raise DuplicateEnrollmentError(f"{key[0]} already enrolled in {key[1]}")
        self._by_pair[key] = enrollment.id
        self._by_id[enrollment.id] = enrollment

    async def update_status(
        self,
        enrollment_id: UUID,
        status: EnrollmentStatus,
        completed_at: int | None = None,
    ) -> Enrollment | None:
        e = self._by_id.get(enrollment_id)
        if e is None:
            return None
        updated = replace(e, status=status, completed_at=completed_at)
        self._by_id[enrollment_id] = updated
        return updated

    async def list(self, criteria: EnrollmentFilter) -> list[Enrollment]:
        matched = [e for e in self._by_id.values() if criteria.matches(e)]
        matched.sort(key=lambda e: e.enrolled_at, reverse=True)
        return matched[criteria.offset : criteria.offset + criteria.limit]
