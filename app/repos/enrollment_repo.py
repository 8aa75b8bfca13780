from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.models.enrollment import Enrollment
from app.repos.memory import SnapshotMixin, UniqueViolation


class EnrollmentRepo(Protocol):
    def get(self, enrollment_id: UUID) -> Enrollment | None: ...
    def get_for(self, student_id: UUID, course_id: UUID) -> Enrollment | None: ...
    def add(self, enrollment: Enrollment) -> None: ...
    def save(self, enrollment: Enrollment) -> None: ...
    def delete(self, enrollment_id: UUID) -> Enrollment | None: ...
    def delete_by_course(self, course_id: UUID) -> list[Enrollment]: ...
    def list_by_student(self, student_id: UUID) -> list[Enrollment]: ...
    def list_by_course(self, course_id: UUID) -> list[Enrollment]: ...
    def list_all(self) -> list[Enrollment]: ...


class InMemoryEnrollmentRepo(SnapshotMixin):
    """Enrollments keyed by id, with a unique (student_id, course_id) index.

    The index is the storage-level uniqueness constraint: ``add`` refuses a
    second record for the same pair no matter what the caller checked first.
    """

    _state_attrs = ("_by_id", "_by_pair")

    def __init__(self) -> None:
        self._by_id: dict[UUID, Enrollment] = {}
        self._by_pair: dict[tuple[UUID, UUID], UUID] = {}

    def get(self, enrollment_id: UUID) -> Enrollment | None:
        return self._by_id.get(enrollment_id)

    def get_for(self, student_id: UUID, course_id: UUID) -> Enrollment | None:
        enrollment_id = self._by_pair.get((student_id, course_id))
        if enrollment_id is None:
            return None
        return self._by_id.get(enrollment_id)

    def add(self, enrollment: Enrollment) -> None:
        key = (enrollment.student_id, enrollment.course_id)
        if key in self._by_pair:
            raise UniqueViolation("enrollment already exists for this student and course")
        self._by_id[enrollment.id] = enrollment
        self._by_pair[key] = enrollment.id

    def save(self, enrollment: Enrollment) -> None:
        existing = self._by_id.get(enrollment.id)
        if existing is None:
            raise KeyError("enrollment not found")
        if (existing.student_id, existing.course_id) != (
            enrollment.student_id,
            enrollment.course_id,
        ):
            raise ValueError("enrollment identity is immutable")
        self._by_id[enrollment.id] = enrollment

    def delete(self, enrollment_id: UUID) -> Enrollment | None:
        removed = self._by_id.pop(enrollment_id, None)
        if removed is not None:
            self._by_pair.pop((removed.student_id, removed.course_id), None)
        return removed

    def delete_by_course(self, course_id: UUID) -> list[Enrollment]:
        doomed = [e for e in self._by_id.values() if e.course_id == course_id]
        for e in doomed:
            self.delete(e.id)
        return doomed

    def list_by_student(self, student_id: UUID) -> list[Enrollment]:
        return [e for e in self._by_id.values() if e.student_id == student_id]

    def list_by_course(self, course_id: UUID) -> list[Enrollment]:
        return [e for e in self._by_id.values() if e.course_id == course_id]

    def list_all(self) -> list[Enrollment]:
        return sorted(self._by_id.values(), key=lambda e: e.enrolled_at, reverse=True)
