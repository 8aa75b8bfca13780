"""Demo: walk a course from draft to a reviewed enrollment using FastAPI TestClient.

Run with:
    python scripts/demo_marketplace_flow.py
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from app.main import app
from app.models.category import Category
from app.models.user import User
from app.repos.unit_of_work import unit_of_work
from app.services import auth_service

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-pass"
PASSWORD = "demo-pass-123"


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def main() -> None:
    client = TestClient(app)

    # ── Seed data: admins are provisioned out of band ───────────────
    with unit_of_work.transaction():
        if unit_of_work.users.get_by_email(ADMIN_EMAIL) is None:
            unit_of_work.users.add(
                User.new(
                    email=ADMIN_EMAIL,
                    password_hash=auth_service.hash_password(ADMIN_PASSWORD),
                    name="Demo Admin",
                    role="admin",
                )
            )
        if unit_of_work.categories.get_by_name("Development") is None:
            unit_of_work.categories.add(Category.new(name="Development"))

    r = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    admin = r.json()["accessToken"]
    print(f"1. POST /auth/login (admin)        → {r.status_code}")

    # ── Step 2: register an instructor and a student ────────────────
    r = client.post(
        "/auth/register",
        json={"name": "Ada", "email": "ada@example.com", "password": PASSWORD, "role": "instructor"},
    )
    instructor = r.json()["accessToken"]
    r = client.post(
        "/auth/register",
        json={"name": "Sam", "email": "sam@example.com", "password": PASSWORD},
    )
    student = r.json()["accessToken"]
    print(f"2. POST /auth/register (x2)        → {r.status_code}")

    # ── Step 3: draft a course ──────────────────────────────────────
    r = client.post(
        "/v1/courses",
        json={
            "title": "Python from Zero",
            "price": 29.0,
            "category": "Development",
            "sections": [
                {
                    "title": "Basics",
                    "lessons": [{"title": "Variables"}, {"title": "Loops"}, {"title": "Functions"}],
                }
            ],
        },
        headers=_bearer(instructor),
    )
    course = r.json()
    course_id = course["id"]
    lesson_ids = [lesson["id"] for lesson in course["sections"][0]["lessons"]]
    print(f"3. POST /v1/courses                → {r.status_code}  status={course['status']}")

    # ── Step 4: submit, then approve ────────────────────────────────
    r = client.put(f"/v1/courses/{course_id}/submit", headers=_bearer(instructor))
    print(f"4. PUT  /submit                    → {r.status_code}  status={r.json()['status']}")
    r = client.put(
        f"/admin/courses/{course_id}/status",
        json={"status": "published"},
        headers=_bearer(admin),
    )
    print(f"5. PUT  /admin/.../status          → {r.status_code}  status={r.json()['status']}")

    # ── Step 6: enroll and finish every lesson ──────────────────────
    r = client.post(f"/v1/enrollments/{course_id}", headers=_bearer(student))
    print(f"6. POST /v1/enrollments            → {r.status_code}  status={r.json()['status']}")
    for lesson_id in lesson_ids:
        r = client.put(
            f"/v1/enrollments/{course_id}/progress",
            json={"lesson_id": lesson_id},
            headers=_bearer(student),
        )
    print(f"7. PUT  /progress (x3)             → {r.status_code}  progress={r.json()['progress']}%")

    # ── Step 8: review the course ───────────────────────────────────
    r = client.post(
        f"/v1/courses/{course_id}/reviews",
        json={"rating": 5, "comment": "Clear and short"},
        headers=_bearer(student),
    )
    print(f"8. POST /reviews                   → {r.status_code}")
    r = client.get(f"/v1/courses/{course_id}")
    body = r.json()
    print(f"9. GET  /v1/courses/{{id}}           → students={body['students']} rating={body['rating']}")

    # ── Step 10: the admin activity feed ────────────────────────────
    r = client.get("/admin/activities", headers=_bearer(admin))
    print(f"10. GET /admin/activities          → {[a['type'] for a in r.json()]}")

    print("\nAll steps completed.")


if __name__ == "__main__":
    main()
