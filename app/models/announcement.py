from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

ANNOUNCEMENT_TYPES = ("info", "warning", "success")


@dataclass(frozen=True, slots=True)
class Announcement:
    id: UUID
    title: str
    content: str
    type: str = "info"  # info|warning|success
    active: bool = True
    created_at: int = 0

    @staticmethod
    def new(*, title: str, content: str, type: str, created_at: int) -> Announcement:
        return Announcement(
            id=uuid4(), title=title, content=content, type=type, created_at=created_at
        )
