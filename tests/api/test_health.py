from __future__ import annotations

from fastapi.testclient import TestClient

from app.db import engine as db_engine


def test_health_returns_ok(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    # No DATABASE_URL / REDIS_URL in tests
    assert data["checks"] == {"database": "not_configured", "redis": "not_configured"}


def test_ready_returns_200_without_database(client: TestClient) -> None:
    resp = client.get("/ready")
    assert resp.status_code == 200


def test_health_reports_degraded_database(client: TestClient, monkeypatch) -> None:
    async def _down() -> bool:
        return False

    monkeypatch.setattr(db_engine, "engine", object())
    monkeypatch.setattr(db_engine, "ping_database", _down)

    health = client.get("/health")
    ready = client.get("/ready")

    assert health.status_code == 200
    assert health.json()["status"] == "degraded"
    assert health.json()["checks"]["database"] == "degraded"
    assert ready.status_code == 503
