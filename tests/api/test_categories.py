from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import auth, create_test_course, token_for


def test_public_list_counts_public_courses(client: TestClient, instructor, category) -> None:
    create_test_course(instructor, category=category.name)
    create_test_course(instructor, category=category.name, status="draft")

    (row,) = client.get("/v1/categories").json()
    assert row["name"] == "Development"
    assert row["course_count"] == 1
    (row,) = client.get("/v1/categories", params={"status": "all"}).json()
    assert row["course_count"] == 2


def test_bad_status_filter(client: TestClient, category) -> None:
    resp = client.get("/v1/categories", params={"status": "archived"})
    assert resp.status_code == 422


def test_admin_creates_category(client: TestClient, admin) -> None:
    resp = client.post(
        "/v1/categories",
        json={"name": "Design", "description": "Pixels"},
        headers=auth(token_for(admin)),
    )
    assert resp.status_code == 201
    assert resp.json()["slug"] == "design"

    dup = client.post("/v1/categories", json={"name": "DESIGN"}, headers=auth(token_for(admin)))
    assert dup.status_code == 409


def test_instructor_cannot_create_category(client: TestClient, instructor) -> None:
    resp = client.post("/v1/categories", json={"name": "Design"}, headers=auth(token_for(instructor)))
    assert resp.status_code == 403


def test_rename_reaches_courses(client: TestClient, admin, instructor, category) -> None:
    course = create_test_course(instructor, category=category.name)
    resp = client.put(
        f"/v1/categories/{category.id}",
        json={"name": "Software"},
        headers=auth(token_for(admin)),
    )
    assert resp.status_code == 200
    assert client.get(f"/v1/courses/{course.id}").json()["category"] == "Software"


def test_delete_guard(client: TestClient, admin, instructor, category) -> None:
    create_test_course(instructor, category=category.name, status="draft")
    resp = client.delete(f"/v1/categories/{category.id}", headers=auth(token_for(admin)))
    assert resp.status_code == 409
    assert resp.json()["code"] == "conflict"


def test_delete_unused(client: TestClient, admin, category) -> None:
    resp = client.delete(f"/v1/categories/{category.id}", headers=auth(token_for(admin)))
    assert resp.status_code == 204
    assert client.get("/v1/categories").json() == []
