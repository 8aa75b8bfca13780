from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
from uuid import UUID, uuid4

EnrollmentStatus = Literal["pending", "active", "rejected"]
ENROLLMENT_STATUSES: tuple[str, ...] = ("pending", "active", "rejected")

# Outcomes an admin may pick when resolving a pending enrollment.
RESOLUTION_OUTCOMES: tuple[str, ...] = ("active", "rejected")


@dataclass(frozen=True, slots=True)
class Enrollment:
    """One student's enrollment in one course.

    At most one record exists per (student_id, course_id); the repository
    enforces that as a hard uniqueness constraint.
    """

    id: UUID
    student_id: UUID
    course_id: UUID
    status: str = "pending"  # pending|active|rejected
    progress: int = 0  # 0..100, always recomputed from completed_lessons
    completed_lessons: tuple[str, ...] = ()
    payment_reference: str | None = None
    enrolled_at: int = 0
    last_accessed: int = 0

    @staticmethod
    def new(
        *,
        student_id: UUID,
        course_id: UUID,
        status: str,
        enrolled_at: int,
        payment_reference: str | None = None,
    ) -> Enrollment:
        return Enrollment(
            id=uuid4(),
            student_id=student_id,
            course_id=course_id,
            status=status,
            payment_reference=payment_reference,
            enrolled_at=enrolled_at,
            last_accessed=enrolled_at,
        )
