from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Review:
    id: UUID
    course_id: UUID
    student_id: UUID
    rating: int  # 1..5
    comment: str = ""
    created_at: int = 0
    updated_at: int = 0

    @staticmethod
    def new(
        *, course_id: UUID, student_id: UUID, rating: int, comment: str, created_at: int
    ) -> Review:
        return Review(
            id=uuid4(),
            course_id=course_id,
            student_id=student_id,
            rating=rating,
            comment=comment,
            created_at=created_at,
            updated_at=created_at,
        )
