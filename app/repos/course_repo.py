from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.models.course import Course
from app.repos.memory import SnapshotMixin, UniqueViolation


class CourseRepo(Protocol):
    def get(self, course_id: UUID) -> Course | None: ...
    def add(self, course: Course) -> None: ...
    def save(self, course: Course) -> None: ...
    def delete(self, course_id: UUID) -> bool: ...
    def list_all(self) -> list[Course]: ...
    def list_by_instructor(self, instructor_id: UUID) -> list[Course]: ...
    def count_by_category(
        self, name: str, statuses: Iterable[str] | None = None
    ) -> int: ...
    def rename_category(self, old_name: str, new_name: str) -> int: ...
    def increment_students(self, course_id: UUID, delta: int) -> Course | None: ...


class InMemoryCourseRepo(SnapshotMixin):
    _state_attrs = ("_by_id",)

    def __init__(self) -> None:
        self._by_id: dict[UUID, Course] = {}

    def get(self, course_id: UUID) -> Course | None:
        return self._by_id.get(course_id)

    def add(self, course: Course) -> None:
        if course.id in self._by_id:
            raise UniqueViolation("course already exists")
        self._by_id[course.id] = course

    def save(self, course: Course) -> None:
        if course.id not in self._by_id:
            raise KeyError("course not found")
        self._by_id[course.id] = course

    def delete(self, course_id: UUID) -> bool:
        return self._by_id.pop(course_id, None) is not None

    def list_all(self) -> list[Course]:
        # Newest first, like the catalog
        return sorted(self._by_id.values(), key=lambda c: c.created_at, reverse=True)

    def list_by_instructor(self, instructor_id: UUID) -> list[Course]:
        return [c for c in self.list_all() if c.instructor_id == instructor_id]

    def count_by_category(
        self, name: str, statuses: Iterable[str] | None = None
    ) -> int:
        wanted = set(statuses) if statuses is not None else None
        return sum(
            1
            for c in self._by_id.values()
            if c.category == name and (wanted is None or c.status in wanted)
        )

    def rename_category(self, old_name: str, new_name: str) -> int:
        touched = [c for c in self._by_id.values() if c.category == old_name]
        for c in touched:
            self._by_id[c.id] = replace(c, category=new_name)
        return len(touched)

    def increment_students(self, course_id: UUID, delta: int) -> Course | None:
        c = self._by_id.get(course_id)
        if c is None:
            return None
        updated = replace(c, students=max(0, c.students + delta))
        self._by_id[course_id] = updated
        return updated
