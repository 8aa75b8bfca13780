from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.models.user import User
from app.repos.memory import SnapshotMixin, UniqueViolation


class UserRepo(Protocol):
    def get_by_id(self, user_id: UUID) -> User | None: ...
    def get_by_email(self, email: str) -> User | None: ...
    def add(self, user: User) -> None: ...
    def save(self, user: User) -> None: ...
    def update_password_hash(self, user_id: UUID, password_hash: str) -> None: ...
    def list_all(self) -> list[User]: ...


class InMemoryUserRepo(SnapshotMixin):
    _state_attrs = ("_by_email", "_by_id")

    def __init__(self) -> None:
        self._by_email: dict[str, User] = {}
        self._by_id: dict[UUID, User] = {}

    def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    def get_by_email(self, email: str) -> User | None:
        return self._by_email.get(email.strip().lower())

    def add(self, user: User) -> None:
        key = user.email.strip().lower()
        if key in self._by_email:
            raise UniqueViolation("email already exists")
        self._by_email[key] = user
        self._by_id[user.id] = user

    def save(self, user: User) -> None:
        if user.id not in self._by_id:
            raise KeyError("user not found")
        # Email is immutable, so the email index key is unchanged
        self._by_id[user.id] = user
        self._by_email[user.email.strip().lower()] = user

    def update_password_hash(self, user_id: UUID, password_hash: str) -> None:
        u = self._by_id.get(user_id)
        if u is None:
            raise KeyError("user not found")

        updated = replace(u, password_hash=password_hash)
        self._by_id[user_id] = updated
        self._by_email[updated.email.strip().lower()] = updated

    def list_all(self) -> list[User]:
        return list(self._by_id.values())
