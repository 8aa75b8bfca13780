"""Course moderation state machine.

One table, keyed by (from, to), holds every legal edge together with the
actors allowed to take it and the activity it emits.  Anything not in the
table is an illegal transition, including "moving" to the current status.

    draft             -> pending             owner, admin
    rejected          -> pending             owner, admin
    pending           -> published           admin      course_approved
    pending           -> rejected            admin      course_rejected (reason required)
    published         -> pending_unpublish   owner, admin
    pending_unpublish -> draft               admin      course_approved
    pending_unpublish -> published           admin      course_rejected
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from uuid import UUID

from app.core.clock import now_ts
from app.core.errors import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.core.metrics import COURSE_TRANSITIONS
from app.models.activity import Activity
from app.models.course import COURSE_STATUSES, Course
from app.models.principal import Principal
from app.repos.unit_of_work import UnitOfWork
from app.services import authz

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Edge:
    actors: frozenset[str]
    activity: str | None = None


OWNER_OR_ADMIN = frozenset({"owner", "admin"})
ADMIN_ONLY = frozenset({"admin"})

TRANSITIONS: dict[tuple[str, str], Edge] = {
    ("draft", "pending"): Edge(OWNER_OR_ADMIN),
    ("rejected", "pending"): Edge(OWNER_OR_ADMIN),
    ("pending", "published"): Edge(ADMIN_ONLY, "course_approved"),
    ("pending", "rejected"): Edge(ADMIN_ONLY, "course_rejected"),
    ("published", "pending_unpublish"): Edge(OWNER_OR_ADMIN),
    ("pending_unpublish", "draft"): Edge(ADMIN_ONLY, "course_approved"),
    ("pending_unpublish", "published"): Edge(ADMIN_ONLY, "course_rejected"),
}


def allowed_targets(current: str) -> list[str]:
    return [to for (frm, to) in TRANSITIONS if frm == current]


def _activity_message(course: Course, target: str, reason: str | None) -> str:
    if course.status == "pending_unpublish":
        verb = "approved" if target == "draft" else "rejected"
        return f"Unpublish request for '{course.title}' was {verb}"
    if target == "published":
        return f"Course '{course.title}' was approved and published"
    return f"Course '{course.title}' was rejected: {reason}"


def apply_transition(
    uow: UnitOfWork,
    actor: Principal,
    course: Course,
    target: str,
    reason: str | None = None,
) -> Course:
    """Validate and apply one edge inside the caller's unit of work.

    Check order: edit right, edge legality, actor on edge, reject reason.
    """
    if target not in COURSE_STATUSES:
        raise ValidationError(f"Unknown course status: {target}")

    if not authz.can_edit_course(actor, course):
        logger.warning(
            "Transition denied: user=%s does not own course=%s", actor.user_id, course.id
        )
        raise ForbiddenError("You can only change the status of your own courses")

    edge = TRANSITIONS.get((course.status, target))
    if edge is None:
        logger.warning(
            "Illegal course transition %s -> %s for course=%s",
            course.status,
            target,
            course.id,
        )
        raise InvalidTransitionError("Course", course.status, target)

    if not authz.can_transition_course(actor, course, edge.actors):
        logger.warning(
            "Transition %s -> %s denied for user=%s course=%s",
            course.status,
            target,
            actor.user_id,
            course.id,
        )
        raise ForbiddenError("Only an admin can make this status change")

    rejection_reason = None
    if target == "rejected":
        rejection_reason = (reason or "").strip()
        if not rejection_reason:
            raise ValidationError("A rejection reason is required")

    now = now_ts()
    updated = replace(
        course, status=target, rejection_reason=rejection_reason, updated_at=now
    )
    uow.courses.save(updated)

    if edge.activity is not None:
        uow.record(
            Activity.new(
                type=edge.activity,
                message=_activity_message(course, target, rejection_reason),
                created_at=now,
                user_id=course.instructor_id,
                course_id=course.id,
                metadata={"from": course.status, "to": target},
            )
        )
    return updated


def transition_course(
    uow: UnitOfWork,
    actor: Principal,
    course_id: UUID,
    target: str,
    reason: str | None = None,
) -> Course:
    """Load, transition, and commit a course status change as one unit."""
    with uow.transaction():
        course = uow.courses.get(course_id)
        if course is None:
            raise NotFoundError("Course", course_id)
        previous = course.status
        updated = apply_transition(uow, actor, course, target, reason)

    COURSE_TRANSITIONS.labels(from_status=previous, to_status=target).inc()
    logger.info(
        "Course %s moved %s -> %s by user=%s", course_id, previous, target, actor.user_id
    )
    return updated


def submit_for_review(uow: UnitOfWork, actor: Principal, course_id: UUID) -> Course:
    return transition_course(uow, actor, course_id, "pending")


def request_unpublish(uow: UnitOfWork, actor: Principal, course_id: UUID) -> Course:
    return transition_course(uow, actor, course_id, "pending_unpublish")

