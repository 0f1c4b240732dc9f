from __future__ import annotations

from collections.abc import Collection
from typing import Protocol
from uuid import UUID

from app.models.performance import (
    LessonPerformance,
    PerformanceFilter,
    PerformanceSummary,
)


class PerformanceRepo(Protocol):
    async def get_attempt(
        self, user_id: UUID, lesson_id: UUID, attempt_number: int
    ) -> LessonPerformance | None: ...
    async def add(self, record: LessonPerformance) -> None: ...
    async def update(self, record: LessonPerformance) -> None: ...
    async def summarize(
        self, user_id: UUID, lesson_ids: Collection[UUID]
    ) -> PerformanceSummary: ...
    async def list(
        self, criteria: PerformanceFilter
    ) -> tuple[list[LessonPerformance], int]: ...


class InMemoryPerformanceRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID, int], LessonPerformance] = {}

    async def get_attempt(
        self, user_id: UUID, lesson_id: UUID, attempt_number: int
    ) -> LessonPerformance | None:
        return self._store.get((user_id, lesson_id, attempt_number))

    async def add(self, record: LessonPerformance) -> None:
        key = (record.user_id, record.lesson_id, record.attempt_number)
        if key in self._store:
            raise ValueError("attempt already recorded")
        self._store[key] = record

    async def update(self, record: LessonPerformance) -> None:
        key = (record.user_id, record.lesson_id, record.attempt_number)
        if key not in self._store:
            raise KeyError("attempt not found")
        self._store[key] = record

    async def summarize(
        self, user_id: UUID, lesson_ids: Collection[UUID]
    ) -> PerformanceSummary:
        wanted = set(lesson_ids)
        records = [
            r
            for r in self._store.values()
            if r.user_id == user_id and r.lesson_id in wanted
        ]
        if not records:
            return PerformanceSummary()
        return PerformanceSummary(
            completed_lessons=len({r.lesson_id for r in records if r.is_completed}),
            record_count=len(records),
            average_percentage=sum(r.percentage for r in records) / len(records),
            total_time_spent=sum(r.time_spent_seconds for r in records),
        )

    async def list(
        self, criteria: PerformanceFilter
    ) -> tuple[list[LessonPerformance], int]:
        matched = [r for r in self._store.values() if criteria.matches(r)]
        matched.sort(key=lambda r: (r.started_at, r.attempt_number), reverse=True)
        page = matched[criteria.offset : criteria.offset + criteria.limit]
        return page, len(matched)
