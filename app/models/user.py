from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    email: str
    password_hash: str
    name: str = ""
    role: str = "student"  # student|instructor|admin
    is_active: bool = True
    created_at: int = 0
    bio: str = ""
    avatar: str = ""

    @staticmethod
    def new(
        *,
        email: str,
        password_hash: str,
        name: str = "",
        role: str = "student",
        created_at: int = 0,
    ) -> User:
        return User(
            id=uuid4(),
            email=email,
            password_hash=password_hash,
            name=name,
            role=role,
            is_active=True,
            created_at=created_at,
        )
