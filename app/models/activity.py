from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal
from uuid import UUID, uuid4

ActivityType = Literal[
    "enrollment",
    "publish",
    "signup",
    "review",
    "course_created",
    "course_approved",
    "course_rejected",
]
ACTIVITY_TYPES: tuple[str, ...] = (
    "enrollment",
    "publish",
    "signup",
    "review",
    "course_created",
    "course_approved",
    "course_rejected",
)


@dataclass(frozen=True, slots=True)
class Activity:
    """Append-only audit fact describing a committed domain transition."""

    id: UUID
    type: str
    message: str
    created_at: int
    user_id: UUID | None = None
    course_id: UUID | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    @staticmethod
    def new(
        *,
        type: str,
        message: str,
        created_at: int,
        user_id: UUID | None = None,
        course_id: UUID | None = None,
        metadata: dict[str, str] | None = None,
    ) -> Activity:
        if type not in ACTIVITY_TYPES:
            raise ValueError(f"unknown activity type {type!r}")
        return Activity(
            id=uuid4(),
            type=type,
            message=message,
            created_at=created_at,
            user_id=user_id,
            course_id=course_id,
            metadata=dict(metadata or {}),
        )
