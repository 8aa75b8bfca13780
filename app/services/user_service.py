"""User directory: profiles and admin account management.

Roles and suspension are read from the store at login; a token already
issued keeps its roles until it expires.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from uuid import UUID

from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.models.principal import ROLES, Principal
from app.models.user import User
from app.repos.unit_of_work import UnitOfWork
from app.services import authz

logger = logging.getLogger(__name__)

USER_STATUSES = ("active", "suspended")
MAX_NAME_LENGTH = 255
MAX_BIO_LENGTH = 1000


def _load(uow: UnitOfWork, user_id: UUID) -> User:
    user = uow.users.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


def _require_admin(actor: Principal) -> None:
    if not authz.can_manage_users(actor):
        logger.warning("User management denied for user=%s", actor.user_id)
        raise ForbiddenError("Only an admin can manage users")


def list_users(uow: UnitOfWork, actor: Principal, role: str | None = None) -> list[User]:
    _require_admin(actor)
    with uow.reading():
        users = uow.users.list_all()
    if role:
        users = [u for u in users if u.role == role]
    return sorted(users, key=lambda u: u.created_at, reverse=True)


def update_profile(
    uow: UnitOfWork,
    actor: Principal,
    *,
    name: str | None = None,
    bio: str | None = None,
    avatar: str | None = None,
) -> User:
    """Change the caller's own profile; omitted fields keep their value."""
    changes: dict[str, str] = {}
    if name is not None:
        name = name.strip()
        if not name or len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Name must be 1-{MAX_NAME_LENGTH} characters")
        changes["name"] = name
    if bio is not None:
        if len(bio) > MAX_BIO_LENGTH:
            raise ValidationError(f"Bio must be at most {MAX_BIO_LENGTH} characters")
        changes["bio"] = bio
    if avatar is not None:
        changes["avatar"] = avatar.strip()

    with uow.transaction():
        updated = replace(_load(uow, actor.uid), **changes)
        uow.users.save(updated)

    logger.info("Profile updated for user=%s fields=%s", actor.user_id, sorted(changes))
    return updated


def set_user_role(uow: UnitOfWork, actor: Principal, user_id: UUID, role: str) -> User:
    _require_admin(actor)
    if role not in ROLES:
        raise ValidationError(f"Unknown role: {role}")
    if str(user_id) == actor.user_id and role != "admin":
        raise ValidationError("Admins cannot remove their own admin role")

    with uow.transaction():
        user = _load(uow, user_id)
        previous = user.role
        updated = replace(user, role=role)
        uow.users.save(updated)

    logger.info(
        "User %s role %s -> %s by user=%s", user_id, previous, role, actor.user_id
    )
    return updated


def set_user_status(uow: UnitOfWork, actor: Principal, user_id: UUID, status: str) -> User:
    """``active`` or ``suspended``; suspended users cannot log in."""
    _require_admin(actor)
    if status not in USER_STATUSES:
        raise ValidationError(f"User status must be one of {', '.join(USER_STATUSES)}")
    if str(user_id) == actor.user_id and status == "suspended":
        raise ValidationError("Admins cannot suspend themselves")

    with uow.transaction():
        updated = replace(_load(uow, user_id), is_active=status == "active")
        uow.users.save(updated)

    logger.info("User %s set %s by user=%s", user_id, status, actor.user_id)
    return updated
