from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import sys
import time
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.models.course import Course, CourseModule, Institution, Lesson
from app.models.enrollment import Enrollment
from app.models.performance import LessonPerformance
from app.models.user import ROLE_LEARNER, User
from app.repos.registry import memory_repos, reset_memory_repos
from app.services import token_service
from app.services.role_cache import InMemoryRoleCache, role_cache

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

T = TypeVar("T")


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Drive one async service/repo call from a sync test."""
    return asyncio.run(coro)


@pytest.fixture(autouse=True)
def reset_repos() -> None:
    """Fresh in-memory stores for every test."""
    reset_memory_repos()


@pytest.fixture(autouse=True)
def reset_role_cache() -> None:
    if isinstance(role_cache, InMemoryRoleCache):
        role_cache.clear()


@pytest.fixture(autouse=True)
def reset_dependency_overrides():
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def repos():
    return memory_repos


def mint_token(user_id: UUID | str) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=str(user_id))


def auth(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(user.id)}"}


# ---------------------------------------------------------------------------
# Seeding helpers (in-memory repos)
# ---------------------------------------------------------------------------


def seed_user(
    email: str = "learner@example.com",
    *,
    roles: tuple[str, ...] = (ROLE_LEARNER,),
    first_name: str = "Ada",
    last_name: str = "Lovelace",
) -> User:
    user = User.new(email=email, first_name=first_name, last_name=last_name, roles=roles)
    run(memory_repos.users.add(user))
    return user


def seed_course(
    lessons: int = 4,
    *,
    title: str = "Intro to Data",
    educator: User | None = None,
    institution_name: str | None = None,
    duration_hours: int | None = 10,
    modules: int = 2,
) -> tuple[Course, list[Lesson]]:
    """A course whose lessons are spread round-robin over ``modules`` modules."""
    institution_id = None
    if institution_name is not None:
        institution = Institution.new(name=institution_name)
        run(memory_repos.courses.add_institution(institution))
        institution_id = institution.id

    course = Course.new(
        title=title,
        educator_id=educator.id if educator else None,
        institution_id=institution_id,
        duration_hours=duration_hours,
    )
    run(memory_repos.courses.add_course(course))

    mods = [
        CourseModule.new(course_id=course.id, position=i, title=f"Module {i + 1}")
        for i in range(modules)
    ]
    for m in mods:
        run(memory_repos.courses.add_module(m))

    created = []
    for i in range(lessons):
        lesson = Lesson.new(
            module_id=mods[i % modules].id, title=f"Lesson {i + 1}", position=i
        )
        run(memory_repos.courses.add_lesson(lesson))
        created.append(lesson)
    return course, created


def seed_enrollment(learner: User, course: Course, enrolled_at: int = 1_700_000_000) -> Enrollment:
    enrollment = Enrollment.new(
        learner_id=learner.id, course_id=course.id, enrolled_at=enrolled_at
    )
    run(memory_repos.enrollments.add(enrollment))
    return enrollment


def seed_performance(
    learner: User,
    lesson: Lesson,
    *,
    completed: bool = True,
    percentage: float = 80.0,
    time_spent_seconds: int = 600,
    attempt_number: int = 1,
) -> LessonPerformance:
    record = LessonPerformance.new(
        user_id=learner.id,
        lesson_id=lesson.id,
        score=percentage,
        max_score=100,
        percentage=percentage,
        time_spent_seconds=time_spent_seconds,
        is_completed=completed,
        attempt_number=attempt_number,
        started_at=1_700_000_000 + attempt_number,
        completed_at=1_700_000_100 if completed else None,
    )
    run(memory_repos.performance.add(record))
    return record


# ---------------------------------------------------------------------------
# Payment webhook helpers
# ---------------------------------------------------------------------------

WEBHOOK_SECRET = "whsec_test_secret"


def stripe_signature(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header the way Stripe signs deliveries."""
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.{payload.decode('utf-8')}".encode()
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def purchase_event(
    learner_id: UUID | str,
    course_id: UUID | str,
    *,
    intent_id: str = "pi_3Nabc123",
    event_type: str = "payment_intent.succeeded",
    payment_type: str = "course_purchase",
    amount: int = 4900,
) -> bytes:
    event = {
        "id": "evt_1Nabc123",
        "type": event_type,
        "data": {
            "object": {
                "id": intent_id,
                "object": "payment_intent",
                "amount": amount,
                "amount_received": amount,
                "currency": "usd",
                "metadata": {
                    "payment_type": payment_type,
                    "learner_id": str(learner_id),
                    "course_id": str(course_id),
                },
            }
        },
    }
    return json.dumps(event).encode()
