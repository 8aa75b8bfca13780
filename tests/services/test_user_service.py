from __future__ import annotations

from uuid import uuid4

import pytest

from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.repos.unit_of_work import unit_of_work
from app.services import user_service
from tests.conftest import create_test_user, principal_for


# ---- profile ----


def test_update_profile_changes_only_given_fields(student) -> None:
    updated = user_service.update_profile(
        unit_of_work, principal_for(student), bio="Learning Rust", avatar=" https://cdn/a.png "
    )
    assert updated.name == student.name
    assert updated.bio == "Learning Rust"
    assert updated.avatar == "https://cdn/a.png"
    assert unit_of_work.users.get_by_id(student.id).bio == "Learning Rust"


def test_update_profile_strips_name(student) -> None:
    updated = user_service.update_profile(unit_of_work, principal_for(student), name="  Ada  ")
    assert updated.name == "Ada"
    # The email index still resolves to the renamed user
    assert unit_of_work.users.get_by_email(student.email).name == "Ada"


@pytest.mark.parametrize(
    "changes",
    [{"name": "   "}, {"name": "x" * 256}, {"bio": "y" * 1001}],
    ids=["blank-name", "long-name", "long-bio"],
)
def test_update_profile_validation(student, changes: dict) -> None:
    with pytest.raises(ValidationError):
        user_service.update_profile(unit_of_work, principal_for(student), **changes)
    assert unit_of_work.users.get_by_id(student.id) == student


# ---- admin account management ----


def test_list_users_filters_by_role(admin, student, instructor) -> None:
    users = user_service.list_users(unit_of_work, principal_for(admin), role="student")
    assert [u.id for u in users] == [student.id]


def test_list_users_requires_admin(instructor) -> None:
    with pytest.raises(ForbiddenError):
        user_service.list_users(unit_of_work, principal_for(instructor))


def test_set_user_role(admin, student) -> None:
    updated = user_service.set_user_role(unit_of_work, principal_for(admin), student.id, "instructor")
    assert updated.role == "instructor"
    assert unit_of_work.users.get_by_id(student.id).role == "instructor"


def test_set_user_role_unknown(admin, student) -> None:
    with pytest.raises(ValidationError, match="Unknown role"):
        user_service.set_user_role(unit_of_work, principal_for(admin), student.id, "owner")


def test_admin_cannot_demote_self(admin) -> None:
    with pytest.raises(ValidationError):
        user_service.set_user_role(unit_of_work, principal_for(admin), admin.id, "student")
    assert unit_of_work.users.get_by_id(admin.id).role == "admin"


def test_admin_can_promote_another_admin(admin) -> None:
    other = create_test_user("student")
    updated = user_service.set_user_role(unit_of_work, principal_for(admin), other.id, "admin")
    assert updated.role == "admin"


def test_set_user_role_requires_admin(instructor, student) -> None:
    with pytest.raises(ForbiddenError):
        user_service.set_user_role(unit_of_work, principal_for(instructor), student.id, "admin")


def test_set_user_role_unknown_user(admin) -> None:
    with pytest.raises(NotFoundError):
        user_service.set_user_role(unit_of_work, principal_for(admin), uuid4(), "student")


def test_suspend_and_reactivate(admin, student) -> None:
    actor = principal_for(admin)
    assert user_service.set_user_status(unit_of_work, actor, student.id, "suspended").is_active is False
    assert user_service.set_user_status(unit_of_work, actor, student.id, "active").is_active is True


def test_set_user_status_invalid(admin, student) -> None:
    with pytest.raises(ValidationError):
        user_service.set_user_status(unit_of_work, principal_for(admin), student.id, "banned")


def test_admin_cannot_suspend_self(admin) -> None:
    with pytest.raises(ValidationError):
        user_service.set_user_status(unit_of_work, principal_for(admin), admin.id, "suspended")
    assert unit_of_work.users.get_by_id(admin.id).is_active is True
