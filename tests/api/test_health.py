from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import create_test_course


def test_health_without_backing_services(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["checks"] == {"redis": "not_configured", "database": "not_configured"}
    assert body["store"] == {"courses": 0}


def test_health_counts_courses(client: TestClient, instructor, category) -> None:
    create_test_course(instructor, category=category.name, status="draft")
    assert client.get("/health").json()["store"]["courses"] == 1


def test_ready(client: TestClient) -> None:
    assert client.get("/ready").status_code == 200
