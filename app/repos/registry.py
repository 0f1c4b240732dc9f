"""Repository bundle and the request-scoped FastAPI dependency.

Services take a ``Repos`` bundle instead of individual repositories so a
single request's reads and writes share one database session (and one
transaction).  Without DATABASE_URL every request shares the in-memory
bundle ``memory_repos``.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.db import engine as db_engine
from app.repos.certificate_repo import CertificateRepo, InMemoryCertificateRepo
from app.repos.course_repo import CourseRepo, InMemoryCourseRepo
from app.repos.enrollment_repo import EnrollmentRepo, InMemoryEnrollmentRepo
from app.repos.payment_repo import InMemoryPaymentRepo, PaymentRepo
from app.repos.performance_repo import InMemoryPerformanceRepo, PerformanceRepo
from app.repos.pg_certificate_repo import PgCertificateRepo
from app.repos.pg_course_repo import PgCourseRepo
from app.repos.pg_enrollment_repo import PgEnrollmentRepo
from app.repos.pg_payment_repo import PgPaymentRepo
from app.repos.pg_performance_repo import PgPerformanceRepo
from app.repos.pg_user_repo import PgUserRepo
from app.repos.user_repo import InMemoryUserRepo, UserRepo


@dataclass(slots=True)
class Repos:
    users: UserRepo
    courses: CourseRepo
    enrollments: EnrollmentRepo
    performance: PerformanceRepo
    certificates: CertificateRepo
    payments: PaymentRepo


def new_memory_repos() -> Repos:
    return Repos(
        users=InMemoryUserRepo(),
        courses=InMemoryCourseRepo(),
        enrollments=InMemoryEnrollmentRepo(),
        performance=InMemoryPerformanceRepo(),
        certificates=InMemoryCertificateRepo(),
        payments=InMemoryPaymentRepo(),
    )


memory_repos = new_memory_repos()


def reset_memory_repos() -> None:
    """Empty every in-memory store in place (tests hold references)."""
    fresh = new_memory_repos()
    for field in Repos.__slots__:
        setattr(memory_repos, field, getattr(fresh, field))


def pg_repos(session: AsyncSession) -> Repos:
    return Repos(
        users=PgUserRepo(session),
        courses=PgCourseRepo(session),
        enrollments=PgEnrollmentRepo(session),
        performance=PgPerformanceRepo(session),
        certificates=PgCertificateRepo(session),
        payments=PgPaymentRepo(session),
    )


async def get_repos() -> AsyncGenerator[Repos, None]:
    """FastAPI dependency yielding the repositories for one request.

    With a database: one session per request, committed on success and
    rolled back on exception.
    """
    factory = db_engine.async_session_factory
    if factory is None:
        yield memory_repos
        return

    async with factory() as session:
        try:
            yield pg_repos(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
