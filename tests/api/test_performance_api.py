from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from app.models.user import ROLE_INSTITUTION_ADMIN
from app.repos.registry import memory_repos
from tests.conftest import auth, run, seed_course, seed_enrollment, seed_user


def test_record_performance(client: TestClient) -> None:
    learner = seed_user()
    _, lessons = seed_course(lessons=2)

    resp = client.post(
        "/v1/performance",
        json={
            "lesson_id": str(lessons[0].id),
            "score": 18,
            "max_score": 20,
            "time_spent_seconds": 420,
            "is_completed": True,
        },
        headers=auth(learner),
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["user_id"] == str(learner.id)
    assert body["percentage"] == 90
    assert body["material_kind"] == "video"
    assert body["attempt_number"] == 1
    assert body["completed_at"] is not None


def test_out_of_range_score_is_422(client: TestClient) -> None:
    learner = seed_user()
    _, lessons = seed_course(lessons=1)

    resp = client.post(
        "/v1/performance",
        json={"lesson_id": str(lessons[0].id), "score": 120, "max_score": 100},
        headers=auth(learner),
    )

    assert resp.status_code == 422


def test_unknown_material_kind_is_422(client: TestClient) -> None:
    learner = seed_user()
    _, lessons = seed_course(lessons=1)

    resp = client.post(
        "/v1/performance",
        json={"lesson_id": str(lessons[0].id), "material_kind": "podcast"},
        headers=auth(learner),
    )

    assert resp.status_code == 422


def test_non_finite_score_is_422(client: TestClient) -> None:
    learner = seed_user()
    _, lessons = seed_course(lessons=1)

    resp = client.post(
        "/v1/performance",
        content=f'{{"lesson_id": "{lessons[0].id}", "score": NaN, "percentage": 50}}',
        headers={**auth(learner), "Content-Type": "application/json"},
    )

    assert resp.status_code == 422
    assert run(memory_repos.performance.get_attempt(learner.id, lessons[0].id, 1)) is None


def test_unknown_lesson_is_404(client: TestClient) -> None:
    learner = seed_user()
    resp = client.post(
        "/v1/performance", json={"lesson_id": str(uuid4())}, headers=auth(learner)
    )
    assert resp.status_code == 404


def test_learner_cannot_record_for_someone_else(client: TestClient) -> None:
    learner = seed_user()
    other = seed_user("other@example.com")
    _, lessons = seed_course(lessons=1)

    resp = client.post(
        "/v1/performance",
        json={"lesson_id": str(lessons[0].id), "user_id": str(other.id)},
        headers=auth(learner),
    )

    assert resp.status_code == 403


def test_last_completed_lesson_issues_certificate(client: TestClient) -> None:
    learner = seed_user()
    course, lessons = seed_course(lessons=2)
    enrollment = seed_enrollment(learner, course)

    for lesson in lessons:
        resp = client.post(
            "/v1/performance",
            json={"lesson_id": str(lesson.id), "score": 70, "is_completed": True},
            headers=auth(learner),
        )
        assert resp.status_code == 201

    got = client.get(f"/v1/enrollments/{enrollment.id}", headers=auth(learner))
    assert got.json()["status"] == "completed"
    assert run(memory_repos.certificates.get_by_enrollment(enrollment.id)) is not None


def test_list_performance_pagination(client: TestClient) -> None:
    learner = seed_user()
    admin = seed_user("admin@example.com", roles=(ROLE_INSTITUTION_ADMIN,))
    _, lessons = seed_course(lessons=3)
    for lesson in lessons:
        client.post(
            "/v1/performance",
            json={"lesson_id": str(lesson.id)},
            headers=auth(learner),
        )

    resp = client.get(
        f"/v1/performance/users/{learner.id}",
        params={"limit": 2, "offset": 0},
        headers=auth(admin),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 3
    assert len(body["items"]) == 2
    assert body["limit"] == 2
