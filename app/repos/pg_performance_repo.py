"""PostgreSQL implementation of PerformanceRepo."""

from __future__ import annotations

from collections.abc import Collection
from uuid import UUID

from sqlalchemy import distinct, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import LessonPerformanceRow
from app.models.performance import (
    LessonPerformance,
    PerformanceFilter,
    PerformanceSummary,
)


class PgPerformanceRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_attempt(
        self, user_id: UUID, lesson_id: UUID, attempt_number: int
    ) -> LessonPerformance | None:
        stmt = select(LessonPerformanceRow).where(
            LessonPerformanceRow.user_id == user_id,
            LessonPerformanceRow.lesson_id == lesson_id,
            LessonPerformanceRow.attempt_number == attempt_number,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_record(row) if row else None

    async def add(self, record: LessonPerformance) -> None:
        self._session.add(
            LessonPerformanceRow(
                id=record.id,
                user_id=record.user_id,
                lesson_id=record.lesson_id,
                material_kind=record.material_kind,
                score=record.score,
                max_score=record.max_score,
                percentage=record.percentage,
                time_spent_seconds=record.time_spent_seconds,
                is_completed=record.is_completed,
                attempt_number=record.attempt_number,
                started_at=record.started_at,
                completed_at=record.completed_at,
            )
        )
        await self._session.flush()

    async def update(self, record: LessonPerformance) -> None:
        stmt = (
            update(LessonPerformanceRow)
            .where(LessonPerformanceRow.id == record.id)
            .values(
                material_kind=record.material_kind,
                score=record.score,
                max_score=record.max_score,
                percentage=record.percentage,
                time_spent_seconds=record.time_spent_seconds,
                is_completed=record.is_completed,
                completed_at=record.completed_at,
            )
        )
        await self._session.execute(stmt)

    async def summarize(
        self, user_id: UUID, lesson_ids: Collection[UUID]
    ) -> PerformanceSummary:
        if not lesson_ids:
            return PerformanceSummary()
        stmt = select(
            func.count(distinct(LessonPerformanceRow.lesson_id)).filter(
                LessonPerformanceRow.is_completed.is_(True)
            ),
            func.count(LessonPerformanceRow.id),
            func.coalesce(func.avg(LessonPerformanceRow.percentage), 0),
            func.coalesce(func.sum(LessonPerformanceRow.time_spent_seconds), 0),
        ).where(
            LessonPerformanceRow.user_id == user_id,
            LessonPerformanceRow.lesson_id.in_(list(lesson_ids)),
        )
        completed, count, avg_pct, total_time = (await self._session.execute(stmt)).one()
        return PerformanceSummary(
            completed_lessons=int(completed),
            record_count=int(count),
            average_percentage=float(avg_pct),
            total_time_spent=int(total_time),
        )

    async def list(
        self, criteria: PerformanceFilter
    ) -> tuple[list[LessonPerformance], int]:
        base = select(LessonPerformanceRow).where(
            LessonPerformanceRow.user_id == criteria.user_id
        )
        if criteria.lesson_id is not None:
            base = base.where(LessonPerformanceRow.lesson_id == criteria.lesson_id)
        if criteria.material_kind is not None:
            base = base.where(
                LessonPerformanceRow.material_kind == criteria.material_kind
            )
        if criteria.is_completed is not None:
            base = base.where(
                LessonPerformanceRow.is_completed.is_(criteria.is_completed)
            )

        total = (
            await self._session.execute(
                select(func.count()).select_from(base.subquery())
            )
        ).scalar_one()
        stmt = (
            base.order_by(
                LessonPerformanceRow.started_at.desc(),
                LessonPerformanceRow.attempt_number.desc(),
            )
            .limit(criteria.limit)
            .offset(criteria.offset)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_record(r) for r in rows], int(total)


def _row_to_record(row: LessonPerformanceRow) -> LessonPerformance:
    return LessonPerformance(
        id=row.id,
        user_id=row.user_id,
        lesson_id=row.lesson_id,
        material_kind=row.material_kind,
        score=row.score,
        max_score=row.max_score,
        percentage=row.percentage,
        time_spent_seconds=row.time_spent_seconds,
        is_completed=row.is_completed,
        attempt_number=row.attempt_number,
        started_at=row.started_at,
        completed_at=row.completed_at,
    )
