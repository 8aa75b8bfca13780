from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from uuid import uuid4

import pytest

from app.core.errors import (
    ConflictError,
    ForbiddenError,
    MarketplaceError,
    NotFoundError,
    ValidationError,
)
from app.repos.unit_of_work import unit_of_work
from app.services import enrollment_service
from tests.conftest import create_test_course, create_test_user, principal_for


def _students_of(course_id) -> int:
    return unit_of_work.courses.get(course_id).students


# ---- direct enrollment ----


def test_enroll_direct_activates_and_counts(student, course) -> None:
    enrollment = enrollment_service.enroll_direct(unit_of_work, principal_for(student), course.id)
    assert enrollment.status == "active"
    assert enrollment.progress == 0
    assert _students_of(course.id) == 1
    assert [a.type for a in unit_of_work.activities.list_all()] == ["enrollment"]


def test_enroll_twice_is_conflict(student, course) -> None:
    actor = principal_for(student)
    enrollment_service.enroll_direct(unit_of_work, actor, course.id)
    with pytest.raises(ConflictError, match="Already enrolled"):
        enrollment_service.enroll_direct(unit_of_work, actor, course.id)
    assert _students_of(course.id) == 1


@pytest.mark.parametrize("status", ["draft", "pending", "rejected"])
def test_cannot_enroll_in_hidden_course(student, instructor, category, status: str) -> None:
    course = create_test_course(instructor, status=status, category=category.name)
    with pytest.raises(ValidationError, match="not available"):
        enrollment_service.enroll_direct(unit_of_work, principal_for(student), course.id)


def test_can_enroll_while_unpublish_pending(student, instructor, category) -> None:
    course = create_test_course(instructor, status="pending_unpublish", category=category.name)
    enrollment = enrollment_service.enroll_direct(unit_of_work, principal_for(student), course.id)
    assert enrollment.status == "active"


def test_only_students_enroll(instructor, course) -> None:
    with pytest.raises(ForbiddenError):
        enrollment_service.enroll_direct(unit_of_work, principal_for(instructor), course.id)


def test_enroll_unknown_course(student) -> None:
    with pytest.raises(NotFoundError):
        enrollment_service.enroll_direct(unit_of_work, principal_for(student), uuid4())


def test_concurrent_enrollments_create_one_record(student, course) -> None:
    actor = principal_for(student)

    def attempt() -> str:
        try:
            enrollment_service.enroll_direct(unit_of_work, actor, course.id)
            return "ok"
        except ConflictError:
            return "conflict"

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: attempt(), range(16)))

    assert results.count("ok") == 1
    assert results.count("conflict") == 15
    assert len(unit_of_work.enrollments.list_by_course(course.id)) == 1
    assert _students_of(course.id) == 1


# ---- payment enrollment ----


def test_payment_opens_pending_pair(student, course) -> None:
    enrollment, txn = enrollment_service.enroll_via_payment(
        unit_of_work, principal_for(student), course.id, payment_method="paypal"
    )
    assert enrollment.status == "pending"
    assert txn.status == "pending"
    assert txn.amount == course.price
    assert txn.payment_method == "paypal"
    assert enrollment.payment_reference == txn.reference
    # Pending enrollments are not students yet
    assert _students_of(course.id) == 0


def test_payment_keeps_client_reference(student, course) -> None:
    enrollment, _ = enrollment_service.enroll_via_payment(
        unit_of_work, principal_for(student), course.id, reference="pi_client_42"
    )
    assert enrollment.payment_reference == "pi_client_42"


def test_payment_after_direct_enrollment_is_conflict(student, course) -> None:
    actor = principal_for(student)
    enrollment_service.enroll_direct(unit_of_work, actor, course.id)
    with pytest.raises(ConflictError):
        enrollment_service.enroll_via_payment(unit_of_work, actor, course.id)
    # No orphan transaction left behind
    assert unit_of_work.transactions.list_all() == []


def test_direct_and_payment_race_leaves_one_enrollment(student, course) -> None:
    actor = principal_for(student)

    def attempt(path: str) -> str:
        try:
            if path == "direct":
                enrollment_service.enroll_direct(unit_of_work, actor, course.id)
            else:
                enrollment_service.enroll_via_payment(unit_of_work, actor, course.id)
            return path
        except ConflictError:
            return "conflict"

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, ["direct", "payment"] * 8))

    assert results.count("conflict") == 15
    (enrollment,) = unit_of_work.enrollments.list_by_course(course.id)
    txns = unit_of_work.transactions.list_all()
    if "direct" in results:
        assert enrollment.status == "active"
        assert txns == []
        assert _students_of(course.id) == 1
    else:
        assert enrollment.status == "pending"
        assert [t.reference for t in txns] == [enrollment.payment_reference]
        assert _students_of(course.id) == 0


# ---- resolution ----


@pytest.mark.parametrize("outcome,settled,students", [("active", "completed", 1), ("rejected", "failed", 0)])
def test_resolution_settles_transaction(
    student, admin, course, outcome: str, settled: str, students: int
) -> None:
    enrollment, txn = enrollment_service.enroll_via_payment(
        unit_of_work, principal_for(student), course.id
    )
    resolved = enrollment_service.resolve_enrollment(
        unit_of_work, principal_for(admin), enrollment.id, outcome
    )
    assert resolved.status == outcome
    assert unit_of_work.transactions.get(txn.id).status == settled
    assert _students_of(course.id) == students


def test_resolution_happens_once(student, admin, course) -> None:
    enrollment, _ = enrollment_service.enroll_via_payment(
        unit_of_work, principal_for(student), course.id
    )
    enrollment_service.resolve_enrollment(
        unit_of_work, principal_for(admin), enrollment.id, "active"
    )
    with pytest.raises(ConflictError, match="already processed"):
        enrollment_service.resolve_enrollment(
            unit_of_work, principal_for(admin), enrollment.id, "rejected"
        )
    assert unit_of_work.enrollments.get(enrollment.id).status == "active"


def test_concurrent_resolutions_apply_once(student, admin, course) -> None:
    enrollment, txn = enrollment_service.enroll_via_payment(
        unit_of_work, principal_for(student), course.id
    )
    actor = principal_for(admin)

    def attempt(outcome: str) -> str:
        try:
            enrollment_service.resolve_enrollment(unit_of_work, actor, enrollment.id, outcome)
            return outcome
        except ConflictError:
            return "conflict"

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, ["active"] * 8))

    assert results.count("active") == 1
    assert results.count("conflict") == 7
    assert _students_of(course.id) == 1
    assert unit_of_work.transactions.get(txn.id).status == "completed"


def test_concurrent_mixed_resolutions_apply_once(student, admin, course) -> None:
    enrollment, txn = enrollment_service.enroll_via_payment(
        unit_of_work, principal_for(student), course.id
    )
    actor = principal_for(admin)

    def attempt(outcome: str) -> str:
        try:
            enrollment_service.resolve_enrollment(unit_of_work, actor, enrollment.id, outcome)
            return outcome
        except ConflictError:
            return "conflict"

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, ["active", "rejected"] * 4))

    assert results.count("conflict") == 7
    (winner,) = [r for r in results if r != "conflict"]
    assert unit_of_work.enrollments.get(enrollment.id).status == winner
    if winner == "active":
        assert (_students_of(course.id), unit_of_work.transactions.get(txn.id).status) == (1, "completed")
    else:
        assert (_students_of(course.id), unit_of_work.transactions.get(txn.id).status) == (0, "failed")
    resolved = [a.metadata["status"] for a in unit_of_work.activities.list_all()]
    assert resolved == ["pending", winner]


def test_resolution_rejects_bad_outcome(student, admin, course) -> None:
    enrollment, _ = enrollment_service.enroll_via_payment(
        unit_of_work, principal_for(student), course.id
    )
    with pytest.raises(ValidationError):
        enrollment_service.resolve_enrollment(
            unit_of_work, principal_for(admin), enrollment.id, "pending"
        )


def test_resolution_requires_admin(student, instructor, course) -> None:
    enrollment, _ = enrollment_service.enroll_via_payment(
        unit_of_work, principal_for(student), course.id
    )
    with pytest.raises(ForbiddenError):
        enrollment_service.resolve_enrollment(
            unit_of_work, principal_for(instructor), enrollment.id, "active"
        )


def test_rejected_pair_cannot_reenroll(student, admin, course) -> None:
    actor = principal_for(student)
    enrollment, _ = enrollment_service.enroll_via_payment(unit_of_work, actor, course.id)
    enrollment_service.resolve_enrollment(
        unit_of_work, principal_for(admin), enrollment.id, "rejected"
    )
    with pytest.raises(ConflictError):
        enrollment_service.enroll_direct(unit_of_work, actor, course.id)


# ---- manual enrollment and removal ----


def test_manual_enroll(admin, course) -> None:
    user = create_test_user("student")
    enrollment = enrollment_service.manual_enroll(
        unit_of_work, principal_for(admin), user.id, course.id
    )
    assert enrollment.status == "active"
    assert enrollment.payment_reference == "manual"
    assert _students_of(course.id) == 1


def test_manual_enroll_unknown_user(admin, course) -> None:
    with pytest.raises(NotFoundError):
        enrollment_service.manual_enroll(unit_of_work, principal_for(admin), uuid4(), course.id)


def test_unenroll_active_decrements(student, admin, course) -> None:
    enrollment = enrollment_service.enroll_direct(unit_of_work, principal_for(student), course.id)
    enrollment_service.unenroll(unit_of_work, principal_for(admin), enrollment.id)
    assert _students_of(course.id) == 0
    assert unit_of_work.enrollments.get(enrollment.id) is None


def test_unenroll_pending_fails_transaction(student, admin, course) -> None:
    enrollment, txn = enrollment_service.enroll_via_payment(
        unit_of_work, principal_for(student), course.id
    )
    enrollment_service.unenroll(unit_of_work, principal_for(admin), enrollment.id)
    assert unit_of_work.transactions.get(txn.id).status == "failed"
    assert _students_of(course.id) == 0


# ---- lesson progress ----


def test_progress_updates(student, course) -> None:
    actor = principal_for(student)
    enrollment_service.enroll_direct(unit_of_work, actor, course.id)

    e = enrollment_service.update_lesson_completion(unit_of_work, actor, course.id, "l1", True)
    assert e.progress == 25
    e = enrollment_service.update_lesson_completion(unit_of_work, actor, course.id, "l2", True)
    assert e.progress == 50
    e = enrollment_service.update_lesson_completion(unit_of_work, actor, course.id, "l2", True)
    assert e.completed_lessons == ("l1", "l2")
    e = enrollment_service.update_lesson_completion(unit_of_work, actor, course.id, "l1", False)
    assert e.progress == 25


def test_progress_unknown_lesson(student, course) -> None:
    actor = principal_for(student)
    enrollment_service.enroll_direct(unit_of_work, actor, course.id)
    with pytest.raises(ValidationError):
        enrollment_service.update_lesson_completion(unit_of_work, actor, course.id, "nope", True)


def test_progress_requires_active_enrollment(student, course) -> None:
    actor = principal_for(student)
    enrollment_service.enroll_via_payment(unit_of_work, actor, course.id)
    with pytest.raises(ForbiddenError):
        enrollment_service.update_lesson_completion(unit_of_work, actor, course.id, "l1", True)


def test_progress_without_enrollment(student, course) -> None:
    with pytest.raises(NotFoundError):
        enrollment_service.get_progress(unit_of_work, principal_for(student), course.id)


def test_domain_errors_share_a_base() -> None:
    assert issubclass(ConflictError, MarketplaceError)


# ---- course roster ----


def test_course_students_for_owner(student, instructor, course) -> None:
    actor = principal_for(student)
    enrollment_service.enroll_direct(unit_of_work, actor, course.id)
    enrollment_service.update_lesson_completion(unit_of_work, actor, course.id, "l1", True)

    ((enrollment, user),) = enrollment_service.list_course_students(
        unit_of_work, principal_for(instructor), course.id
    )
    assert user.email == student.email
    assert enrollment.progress == 25


def test_course_students_for_admin(admin, course) -> None:
    assert enrollment_service.list_course_students(unit_of_work, principal_for(admin), course.id) == []


def test_course_students_other_instructor(course) -> None:
    other = create_test_user("instructor")
    with pytest.raises(ForbiddenError):
        enrollment_service.list_course_students(unit_of_work, principal_for(other), course.id)


def test_course_students_unknown_course(instructor) -> None:
    with pytest.raises(NotFoundError):
        enrollment_service.list_course_students(unit_of_work, principal_for(instructor), uuid4())
