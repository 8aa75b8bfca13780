from __future__ import annotations

import logging
import re

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from app.core.clock import now_ts
from app.core.errors import ConflictError, ValidationError
from app.models.activity import Activity
from app.models.user import User
from app.repos.memory import UniqueViolation
from app.repos.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

# Argon2 hash strings encode parameters + salt
_ph = PasswordHasher()

# Roles a visitor may pick for themselves; admins are provisioned out of band
SELF_SERVICE_ROLES = ("student", "instructor")
MIN_PASSWORD_LENGTH = 8
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise ValueError("password must be non-empty")
    return _ph.hash(plain_password)


# verify_password() must catch Argon2 exceptions and return False
def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return _ph.verify(password_hash, plain_password)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


def register_user(
    uow: UnitOfWork,
    *,
    email: str,
    password: str,
    name: str = "",
    role: str = "student",
) -> User:
    email = email.strip().lower()
    if not _EMAIL_RE.match(email):
        logger.warning("Rejected registration with malformed email")
        raise ValidationError("A valid email is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    if role not in SELF_SERVICE_ROLES:
        raise ValidationError(f"Cannot register with role: {role}")

    password_hash = hash_password(password)
    with uow.transaction():
        if uow.users.get_by_email(email) is not None:
            raise ConflictError("Email already registered")
        now = now_ts()
        user = User.new(
            email=email,
            password_hash=password_hash,
            name=name.strip(),
            role=role,
            created_at=now,
        )
        try:
            uow.users.add(user)
        except UniqueViolation as exc:
            raise ConflictError("Email already registered") from exc
        uow.record(
            Activity.new(
                type="signup",
                message=f"New {role} signed up: {user.name or email}",
                created_at=now,
                user_id=user.id,
            )
        )

    logger.info("Registered user id=%s role=%s", user.id, role)
    return user


def authenticate_user(uow: UnitOfWork, email: str, password: str) -> User | None:
    """The active user owning these credentials, or None.

    Verification runs outside the store lock; only the rehash write takes it.
    """
    with uow.reading():
        user = uow.users.get_by_email(email)
    if user is None:
        return None
    if not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None

    # Upgrade the stored hash if Argon2 parameters changed since it was made
    try:
        needs_rehash = _ph.check_needs_rehash(user.password_hash)
    except InvalidHash:
        return None
    if needs_rehash:
        new_hash = _ph.hash(password)
        with uow.transaction():
            uow.users.update_password_hash(user.id, new_hash)
        logger.info("Rehashed password for user=%s", user.id)

    return user
