"""Enrollment workflow.

Three ways in:

  direct   student enrolls in a public course      -> active
  payment  student requests a paid enrollment       -> pending + pending transaction
  manual   admin enrolls a user                     -> active

A pending enrollment is resolved exactly once by an admin.  Every entry
point and the resolution run as one unit of work, so the "is it still
pending?" read and the writes that follow cannot interleave with another
request on the same enrollment.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from uuid import UUID

from app.core.clock import now_ts
from app.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from app.core.metrics import ENROLLMENT_RESOLUTIONS, ENROLLMENTS_CREATED
from app.models.activity import Activity
from app.models.course import Course
from app.models.enrollment import RESOLUTION_OUTCOMES, Enrollment
from app.models.principal import Principal
from app.models.transaction import SETTLEMENT_FOR_RESOLUTION, Transaction
from app.models.user import User
from app.repos.memory import UniqueViolation
from app.repos.unit_of_work import UnitOfWork
from app.services import authz, progress

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_METHOD = "credit_card"


def _load_course(uow: UnitOfWork, course_id: UUID) -> Course:
    course = uow.courses.get(course_id)
    if course is None:
        raise NotFoundError("Course", course_id)
    return course


def _require_enrollable(course: Course) -> None:
    if not course.is_public:
        raise ValidationError("Course is not available for enrollment")


def _add_enrollment(uow: UnitOfWork, enrollment: Enrollment) -> None:
    # The repo's pair index is the real guard; the lookup only gives a nicer message
    if uow.enrollments.get_for(enrollment.student_id, enrollment.course_id) is not None:
        raise ConflictError("Already enrolled in this course")
    try:
        uow.enrollments.add(enrollment)
    except UniqueViolation as exc:
        raise ConflictError("Already enrolled in this course") from exc


def _require_student(actor: Principal) -> None:
    if not authz.can_enroll(actor):
        logger.warning("Enrollment denied: user=%s is not a student", actor.user_id)
        raise ForbiddenError("Only students can enroll in courses")


def enroll_direct(uow: UnitOfWork, actor: Principal, course_id: UUID) -> Enrollment:
    _require_student(actor)

    with uow.transaction():
        course = _load_course(uow, course_id)
        _require_enrollable(course)
        now = now_ts()
        enrollment = Enrollment.new(
            student_id=actor.uid, course_id=course_id, status="active", enrolled_at=now
        )
        _add_enrollment(uow, enrollment)
        uow.courses.increment_students(course_id, +1)
        uow.record(
            Activity.new(
                type="enrollment",
                message=f"A student enrolled in '{course.title}'",
                created_at=now,
                user_id=actor.uid,
                course_id=course_id,
            )
        )

    ENROLLMENTS_CREATED.labels(path="direct").inc()
    logger.info("User %s enrolled in course %s", actor.user_id, course_id)
    return enrollment


def enroll_via_payment(
    uow: UnitOfWork,
    actor: Principal,
    course_id: UUID,
    payment_method: str | None = None,
    reference: str | None = None,
) -> tuple[Enrollment, Transaction]:
    """Open a pending enrollment and its pending transaction together."""
    _require_student(actor)

    with uow.transaction():
        course = _load_course(uow, course_id)
        _require_enrollable(course)
        now = now_ts()
        txn = Transaction.new(
            user_id=actor.uid,
            course_id=course_id,
            amount=course.price,
            payment_method=payment_method or DEFAULT_PAYMENT_METHOD,
            created_at=now,
        )
        enrollment = Enrollment.new(
            student_id=actor.uid,
            course_id=course_id,
            status="pending",
            enrolled_at=now,
            payment_reference=reference or txn.reference,
        )
        _add_enrollment(uow, enrollment)
        uow.transactions.add(txn)
        uow.record(
            Activity.new(
                type="enrollment",
                message=f"Payment submitted for '{course.title}', awaiting approval",
                created_at=now,
                user_id=actor.uid,
                course_id=course_id,
                metadata={"transaction": txn.reference, "status": "pending"},
            )
        )

    ENROLLMENTS_CREATED.labels(path="payment").inc()
    logger.info(
        "Payment enrollment opened user=%s course=%s txn=%s",
        actor.user_id,
        course_id,
        txn.reference,
    )
    return enrollment, txn


def resolve_enrollment(
    uow: UnitOfWork, actor: Principal, enrollment_id: UUID, outcome: str
) -> Enrollment:
    """Approve (``active``) or reject (``rejected``) a pending enrollment."""
    if not authz.can_resolve_enrollment(actor):
        logger.warning("Resolution denied for user=%s", actor.user_id)
        raise ForbiddenError("Only an admin can resolve enrollments")
    if outcome not in RESOLUTION_OUTCOMES:
        raise ValidationError(f"Invalid enrollment status: {outcome}")

    with uow.transaction():
        enrollment = uow.enrollments.get(enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment", enrollment_id)
        if enrollment.status != "pending":
            raise ConflictError("Enrollment already processed")
        course = _load_course(uow, enrollment.course_id)

        now = now_ts()
        resolved = replace(enrollment, status=outcome, last_accessed=now)
        uow.enrollments.save(resolved)

        txn = uow.transactions.find_pending(enrollment.student_id, enrollment.course_id)
        if txn is not None:
            uow.transactions.save(
                replace(txn, status=SETTLEMENT_FOR_RESOLUTION[outcome], updated_at=now)
            )
        if outcome == "active":
            uow.courses.increment_students(course.id, +1)

        verb = "approved" if outcome == "active" else "rejected"
        uow.record(
            Activity.new(
                type="enrollment",
                message=f"Enrollment in '{course.title}' was {verb}",
                created_at=now,
                user_id=enrollment.student_id,
                course_id=course.id,
                metadata={"status": outcome},
            )
        )

    ENROLLMENT_RESOLUTIONS.labels(outcome=outcome).inc()
    logger.info(
        "Enrollment %s resolved as %s by user=%s", enrollment_id, outcome, actor.user_id
    )
    return resolved


def manual_enroll(
    uow: UnitOfWork, actor: Principal, user_id: UUID, course_id: UUID
) -> Enrollment:
    if not authz.can_resolve_enrollment(actor):
        raise ForbiddenError("Only an admin can enroll users manually")

    with uow.transaction():
        user = uow.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        course = _load_course(uow, course_id)
        now = now_ts()
        enrollment = Enrollment.new(
            student_id=user_id,
            course_id=course_id,
            status="active",
            enrolled_at=now,
            payment_reference="manual",
        )
        _add_enrollment(uow, enrollment)
        uow.courses.increment_students(course_id, +1)
        uow.record(
            Activity.new(
                type="enrollment",
                message=f"{user.name or user.email} was enrolled in '{course.title}' by an admin",
                created_at=now,
                user_id=user_id,
                course_id=course_id,
                metadata={"path": "manual"},
            )
        )

    ENROLLMENTS_CREATED.labels(path="manual").inc()
    logger.info(
        "Admin %s enrolled user=%s in course=%s", actor.user_id, user_id, course_id
    )
    return enrollment


def unenroll(uow: UnitOfWork, actor: Principal, enrollment_id: UUID) -> None:
    if not authz.can_resolve_enrollment(actor):
        raise ForbiddenError("Only an admin can remove enrollments")

    with uow.transaction():
        enrollment = uow.enrollments.delete(enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment", enrollment_id)
        if enrollment.status == "active":
            uow.courses.increment_students(enrollment.course_id, -1)
        elif enrollment.status == "pending":
            txn = uow.transactions.find_pending(enrollment.student_id, enrollment.course_id)
            if txn is not None:
                uow.transactions.save(replace(txn, status="failed", updated_at=now_ts()))

    logger.info("Enrollment %s removed by user=%s", enrollment_id, actor.user_id)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


def _own_enrollment(
    uow: UnitOfWork, actor: Principal, course_id: UUID
) -> tuple[Enrollment, Course]:
    course = _load_course(uow, course_id)
    enrollment = uow.enrollments.get_for(actor.uid, course_id)
    if enrollment is None:
        raise NotFoundError("Enrollment", f"{actor.user_id}:{course_id}")
    return enrollment, course


def update_lesson_completion(
    uow: UnitOfWork,
    actor: Principal,
    course_id: UUID,
    lesson_id: str,
    completed: bool,
) -> Enrollment:
    with uow.transaction():
        enrollment, course = _own_enrollment(uow, actor, course_id)
        if enrollment.status != "active":
            raise ForbiddenError("Enrollment is not active")
        if lesson_id not in progress.lesson_ids(course):
            raise ValidationError(f"Lesson {lesson_id} is not part of this course")

        toggled = progress.toggle_completion(
            enrollment.completed_lessons, lesson_id, completed
        )
        live, percent = progress.recompute(course, toggled)
        updated = replace(
            enrollment,
            completed_lessons=live,
            progress=percent,
            last_accessed=now_ts(),
        )
        uow.enrollments.save(updated)

    logger.debug(
        "Progress user=%s course=%s lesson=%s completed=%s -> %d%%",
        actor.user_id,
        course_id,
        lesson_id,
        completed,
        percent,
    )
    return updated


def _with_live_progress(enrollment: Enrollment, course: Course | None) -> Enrollment:
    if course is None:
        return enrollment
    live, percent = progress.recompute(course, enrollment.completed_lessons)
    return replace(enrollment, completed_lessons=live, progress=percent)


def get_progress(uow: UnitOfWork, actor: Principal, course_id: UUID) -> Enrollment:
    """The caller's enrollment with progress recomputed against the live course."""
    with uow.reading():
        enrollment, course = _own_enrollment(uow, actor, course_id)
    return _with_live_progress(enrollment, course)


def list_own_enrollments(
    uow: UnitOfWork, actor: Principal
) -> list[tuple[Enrollment, Course]]:
    with uow.reading():
        rows = []
        for enrollment in uow.enrollments.list_by_student(actor.uid):
            course = uow.courses.get(enrollment.course_id)
            if course is not None:
                rows.append((_with_live_progress(enrollment, course), course))
    return rows


def list_enrollments(uow: UnitOfWork, status: str | None = None) -> list[Enrollment]:
    """Every enrollment, progress recomputed against each course as it is now."""
    with uow.reading():
        items = [
            _with_live_progress(e, uow.courses.get(e.course_id))
            for e in uow.enrollments.list_all()
        ]
    if status:
        items = [e for e in items if e.status == status]
    return items


def list_course_students(
    uow: UnitOfWork, actor: Principal, course_id: UUID
) -> list[tuple[Enrollment, User | None]]:
    """Roster of one course for its instructor or an admin, newest first."""
    with uow.reading():
        course = _load_course(uow, course_id)
        if not authz.can_edit_course(actor, course):
            raise ForbiddenError("Not allowed to view students of this course")
        rows = [
            (_with_live_progress(e, course), uow.users.get_by_id(e.student_id))
            for e in uow.enrollments.list_by_course(course_id)
        ]
    rows.sort(key=lambda row: row[0].enrolled_at, reverse=True)
    return rows


def list_own_transactions(uow: UnitOfWork, actor: Principal) -> list[Transaction]:
    with uow.reading():
        return uow.transactions.list_by_user(actor.uid)


def list_transactions(uow: UnitOfWork, status: str | None = None) -> list[Transaction]:
    with uow.reading():
        items = uow.transactions.list_all()
    if status:
        items = [t for t in items if t.status == status]
    return items
