from __future__ import annotations

import threading

import pytest
from argon2 import PasswordHasher

from app.core.errors import ConflictError, ValidationError
from app.models.user import User
from app.repos.unit_of_work import unit_of_work
from app.services.auth_service import (
    authenticate_user,
    hash_password,
    register_user,
    verify_password,
)
from app.services.user_service import set_user_status
from tests.conftest import create_test_user, principal_for


def _add(user: User) -> User:
    with unit_of_work.transaction():
        unit_of_work.users.add(user)
    return user


def test_authenticate_user_rehashes_when_needed() -> None:
    # Create a user with a deliberately "weak/old" Argon2 configuration.
    old_ph = PasswordHasher(
        time_cost=1, memory_cost=8 * 1024, parallelism=1
    )  # small mem for test
    password = "pw123456"
    old_hash = old_ph.hash(password)
    _add(User.new(email="tee@example.com", password_hash=old_hash, role="student"))

    # Authenticate using the service's hasher (default params)
    # which should decide rehash is needed
    authed = authenticate_user(unit_of_work, "tee@example.com", password)
    assert authed is not None

    # Confirm the store now holds a different (upgraded) hash
    stored = unit_of_work.users.get_by_email("tee@example.com")
    assert stored is not None
    assert stored.password_hash != old_hash


def test_rehash_waits_for_open_unit_and_survives_its_rollback() -> None:
    old_hash = PasswordHasher(time_cost=1, memory_cost=8 * 1024, parallelism=1).hash("pw123456")
    _add(User.new(email="tee@example.com", password_hash=old_hash))

    inside = threading.Event()
    release = threading.Event()

    def failing_unit() -> None:
        with pytest.raises(ValidationError):
            with unit_of_work.transaction():
                inside.set()
                release.wait(timeout=5)
                raise ValidationError("boom")

    worker = threading.Thread(target=failing_unit)
    worker.start()
    inside.wait(timeout=5)
    login = threading.Thread(
        target=authenticate_user, args=(unit_of_work, "tee@example.com", "pw123456")
    )
    login.start()
    release.set()
    worker.join()
    login.join()

    assert unit_of_work.users.get_by_email("tee@example.com").password_hash != old_hash


def test_authenticate_user_wrong_password() -> None:
    _add(User.new(email="a@example.com", password_hash=hash_password("correct-horse")))
    assert authenticate_user(unit_of_work, "a@example.com", "battery-staple") is None
    assert authenticate_user(unit_of_work, "nobody@example.com", "correct-horse") is None


def test_authenticate_suspended_user() -> None:
    admin = create_test_user("admin")
    u = _add(User.new(email="a@example.com", password_hash=hash_password("correct-horse")))
    set_user_status(unit_of_work, principal_for(admin), u.id, "suspended")
    assert authenticate_user(unit_of_work, "a@example.com", "correct-horse") is None


def test_verify_password_handles_garbage_hash() -> None:
    assert verify_password("pw", "not-an-argon2-hash") is False
    assert verify_password("", "whatever") is False


def test_register_user_normalizes_and_records_signup() -> None:
    user = register_user(
        unit_of_work,
        email="  New.Person@Example.com ",
        password="longenough",
        name=" New Person ",
        role="instructor",
    )
    assert user.email == "new.person@example.com"
    assert user.name == "New Person"
    assert user.role == "instructor"
    assert verify_password("longenough", user.password_hash)
    assert [a.type for a in unit_of_work.activities.list_all()] == ["signup"]


def test_register_duplicate_email() -> None:
    register_user(unit_of_work, email="dup@example.com", password="longenough")
    with pytest.raises(ConflictError):
        register_user(unit_of_work, email="DUP@example.com", password="longenough")


@pytest.mark.parametrize(
    "email,password,role",
    [
        ("not-an-email", "longenough", "student"),
        ("ok@example.com", "short", "student"),
        ("ok@example.com", "longenough", "admin"),
    ],
)
def test_register_validation(email: str, password: str, role: str) -> None:
    with pytest.raises(ValidationError):
        register_user(unit_of_work, email=email, password=password, role=role)
    assert unit_of_work.users.list_all() == []
