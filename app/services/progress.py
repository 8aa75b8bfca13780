"""Progress engine.

Pure functions over a course's lesson tree and an enrollment's completed
lesson ids.  Nothing here touches a repository; the enrollment service
persists what these functions return.

Lesson ids that are no longer part of the course (the instructor removed
or replaced the lesson) are "stale".  They count in neither the numerator
nor the denominator, and ``recompute`` drops them so the next write prunes
them from the stored list.
"""

from __future__ import annotations

import math

from app.models.course import Course
from app.models.enrollment import Enrollment


def lesson_ids(course: Course) -> list[str]:
    """All lesson ids of the course, in section order then lesson order."""
    ids: list[str] = []
    for section in course.sections:
        for lesson in sorted(section.lessons, key=lambda l: l.order):
            ids.append(lesson.id)
    return ids


def _dedupe(ids: tuple[str, ...] | list[str]) -> list[str]:
    seen: list[str] = []
    for lid in ids:
        if lid not in seen:
            seen.append(lid)
    return seen


def toggle_completion(
    completed: tuple[str, ...] | list[str], lesson_id: str, is_completed: bool
) -> tuple[str, ...]:
    """Add or remove ``lesson_id``; the result never holds duplicates."""
    seen = _dedupe(completed)
    if is_completed:
        if lesson_id not in seen:
            seen.append(lesson_id)
    else:
        seen = [lid for lid in seen if lid != lesson_id]
    return tuple(seen)


def percentage(completed_count: int, total_count: int) -> int:
    if total_count <= 0:
        return 0
    # Half-up rounding: 1 of 8 lessons reads as 13%, not 12%
    value = math.floor(100 * completed_count / total_count + 0.5)
    return max(0, min(100, value))


def recompute(
    course: Course, completed: tuple[str, ...] | list[str]
) -> tuple[tuple[str, ...], int]:
    """Return (live completed ids, progress) for the course as it is now."""
    live = set(lesson_ids(course))
    kept = tuple(lid for lid in _dedupe(completed) if lid in live)
    return kept, percentage(len(kept), len(live))


def can_review(enrollment: Enrollment | None, course: Course) -> bool:
    if enrollment is None or enrollment.status != "active":
        return False
    _, progress = recompute(course, enrollment.completed_lessons)
    return progress == 100
