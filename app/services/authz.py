"""Capability predicates.

Every "may this actor do that" question asked by a service or a router is
answered here, so the rules live in one place.  Predicates return bools;
callers decide whether a False becomes a 403 or a filtered result.
"""

from __future__ import annotations

from app.models.course import Course
from app.models.principal import Principal


def is_owner(actor: Principal | None, course: Course) -> bool:
    return actor is not None and str(course.instructor_id) == actor.user_id


def can_view_course(actor: Principal | None, course: Course) -> bool:
    """Public statuses are visible to anyone; the rest to owner and admin."""
    if course.is_public:
        return True
    if actor is None:
        return False
    return actor.is_admin() or is_owner(actor, course)


def can_create_course(actor: Principal) -> bool:
    return actor.has_any_role({"instructor", "admin"})


def can_edit_course(actor: Principal, course: Course) -> bool:
    return actor.is_admin() or is_owner(actor, course)


def can_transition_course(actor: Principal, course: Course, allowed: frozenset[str]) -> bool:
    """``allowed`` is the actor set of the edge: a subset of {"owner", "admin"}."""
    if "admin" in allowed and actor.is_admin():
        return True
    return "owner" in allowed and is_owner(actor, course)


def can_resolve_enrollment(actor: Principal) -> bool:
    return actor.is_admin()


def can_manage_catalog(actor: Principal) -> bool:
    # Categories, announcements, featured flags
    return actor.is_admin()


def can_enroll(actor: Principal) -> bool:
    return actor.is_student()


def can_manage_users(actor: Principal) -> bool:
    return actor.is_admin()
