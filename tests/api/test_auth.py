from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from app.services import token_service
from tests.conftest import auth, mint_token


def _register(client: TestClient, email: str = "ada@example.com", role: str = "student"):
    return client.post(
        "/auth/register",
        json={"name": "Ada", "email": email, "password": "analytical", "role": role},
    )


def test_register_returns_token_and_user(client: TestClient) -> None:
    resp = _register(client, role="instructor")
    assert resp.status_code == 201
    data = resp.json()
    assert data["user"]["email"] == "ada@example.com"
    assert data["user"]["role"] == "instructor"

    claims = token_service.decode_access_token(data["accessToken"])
    assert claims["sub"] == data["user"]["id"]
    assert claims["roles"] == ["instructor"]


def test_register_duplicate_email_conflicts(client: TestClient) -> None:
    _register(client)
    resp = _register(client, email="ADA@example.com")
    assert resp.status_code == 409
    assert resp.json()["code"] == "conflict"


def test_register_cannot_pick_admin(client: TestClient) -> None:
    resp = _register(client, role="admin")
    assert resp.status_code == 422


def test_register_short_password(client: TestClient) -> None:
    resp = client.post(
        "/auth/register",
        json={"name": "Ada", "email": "ada@example.com", "password": "short"},
    )
    assert resp.status_code == 422
    assert resp.json()["code"] == "validation_error"


def test_login_and_me(client: TestClient) -> None:
    _register(client)
    resp = client.post(
        "/auth/login", json={"email": " Ada@Example.com ", "password": "analytical"}
    )
    assert resp.status_code == 200
    token = resp.json()["accessToken"]

    me = client.get("/auth/me", headers=auth(token))
    assert me.status_code == 200
    assert me.json()["email"] == "ada@example.com"
    assert me.json()["name"] == "Ada"


def test_login_rejects_bad_password(client: TestClient) -> None:
    _register(client)
    resp = client.post("/auth/login", json={"email": "ada@example.com", "password": "wrong"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid email or password"


def test_me_requires_token(client: TestClient) -> None:
    assert client.get("/auth/me").status_code == 401


def test_me_for_unknown_user_is_404(client: TestClient) -> None:
    resp = client.get("/auth/me", headers=auth(mint_token(roles=["student"])))
    assert resp.status_code == 404


def test_expired_token_rejected(client: TestClient) -> None:
    token = token_service.create_access_token(sub=str(uuid4()), ttl_minutes=-1)
    resp = client.get("/auth/me", headers=auth(token))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token expired"


def test_non_uuid_subject_rejected(client: TestClient) -> None:
    resp = client.get("/auth/me", headers=auth(mint_token(user_id="not-a-uuid")))
    assert resp.status_code == 401


def test_garbage_token_rejected(client: TestClient) -> None:
    resp = client.get("/auth/me", headers=auth("not.a.jwt"))
    assert resp.status_code == 401


def test_update_profile(client: TestClient) -> None:
    token = _register(client).json()["accessToken"]
    resp = client.put(
        "/auth/profile", json={"bio": "Counting engines", "name": "Ada L."}, headers=auth(token)
    )
    assert resp.status_code == 200
    assert resp.json()["name"] == "Ada L."

    me = client.get("/auth/me", headers=auth(token)).json()
    assert (me["name"], me["bio"], me["avatar"]) == ("Ada L.", "Counting engines", "")


def test_update_profile_blank_name(client: TestClient) -> None:
    token = _register(client).json()["accessToken"]
    resp = client.put("/auth/profile", json={"name": "  "}, headers=auth(token))
    assert resp.status_code == 422


def test_update_profile_requires_token(client: TestClient) -> None:
    assert client.put("/auth/profile", json={"bio": "x"}).status_code == 401
