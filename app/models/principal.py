from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

ROLES = ("student", "instructor", "admin")


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller extracted from a validated access token.

    The workflow engine treats this as trusted input: it never re-derives
    roles from the user directory.

        user_id: subject from the token (UUID string)
        roles: platform roles (student|instructor|admin)
    """

    user_id: str
    roles: frozenset[str]

    @property
    def uid(self) -> UUID:
        return UUID(self.user_id)

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, roles: set[str]) -> bool:
        return bool(self.roles & roles)

    def is_admin(self) -> bool:
        return "admin" in self.roles

    def is_student(self) -> bool:
        return "student" in self.roles
