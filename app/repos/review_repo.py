from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.models.review import Review
from app.repos.memory import SnapshotMixin, UniqueViolation


class ReviewRepo(Protocol):
    def get_for(self, course_id: UUID, student_id: UUID) -> Review | None: ...
    def add(self, review: Review) -> None: ...
    def save(self, review: Review) -> None: ...
    def list_by_course(self, course_id: UUID) -> list[Review]: ...
    def delete_by_course(self, course_id: UUID) -> int: ...


class InMemoryReviewRepo(SnapshotMixin):
    _state_attrs = ("_by_pair",)

    def __init__(self) -> None:
        self._by_pair: dict[tuple[UUID, UUID], Review] = {}

    def get_for(self, course_id: UUID, student_id: UUID) -> Review | None:
        return self._by_pair.get((course_id, student_id))

    def add(self, review: Review) -> None:
        key = (review.course_id, review.student_id)
        if key in self._by_pair:
            raise UniqueViolation("review already exists for this student and course")
        self._by_pair[key] = review

    def save(self, review: Review) -> None:
        key = (review.course_id, review.student_id)
        if key not in self._by_pair:
            raise KeyError("review not found")
        self._by_pair[key] = review

    def list_by_course(self, course_id: UUID) -> list[Review]:
        return sorted(
            (r for r in self._by_pair.values() if r.course_id == course_id),
            key=lambda r: r.updated_at,
            reverse=True,
        )

    def delete_by_course(self, course_id: UUID) -> int:
        doomed = [k for k in self._by_pair if k[0] == course_id]
        for k in doomed:
            del self._by_pair[k]
        return len(doomed)
