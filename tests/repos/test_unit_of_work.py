"""Unit of work: atomic commit, rollback on failure, staged activities."""

from __future__ import annotations

import pytest
from prometheus_client import REGISTRY

from app.core.clock import now_ts
from app.core.errors import ConflictError, TransactionFailure
from app.models.activity import Activity
from app.repos.unit_of_work import InMemoryUnitOfWork, unit_of_work
from app.services import enrollment_service
from tests.conftest import principal_for


def _rollbacks(reason: str) -> float:
    return REGISTRY.get_sample_value("workflow_rollbacks_total", {"reason": reason}) or 0.0


def test_unexpected_error_rolls_back_everything(
    student, course, monkeypatch: pytest.MonkeyPatch
) -> None:
    def boom(course_id, delta):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(unit_of_work.courses, "increment_students", boom)
    before = _rollbacks("unexpected")

    with pytest.raises(TransactionFailure) as info:
        enrollment_service.enroll_direct(unit_of_work, principal_for(student), course.id)

    # Generic message; the cause is chained for the log only
    assert "disk on fire" not in info.value.message
    assert isinstance(info.value.__cause__, RuntimeError)
    assert unit_of_work.enrollments.list_all() == []
    assert unit_of_work.activities.list_all() == []
    assert _rollbacks("unexpected") - before == 1


def test_domain_error_propagates_unchanged() -> None:
    uow = InMemoryUnitOfWork()
    before = _rollbacks("domain")
    with pytest.raises(ConflictError):
        with uow.transaction():
            raise ConflictError("nope")
    assert _rollbacks("domain") - before == 1


def test_activities_only_land_on_commit() -> None:
    uow = InMemoryUnitOfWork()
    activity = Activity.new(type="signup", message="hi", created_at=now_ts())

    with pytest.raises(ConflictError):
        with uow.transaction():
            uow.record(activity)
            raise ConflictError("abort")
    assert uow.activities.list_all() == []

    with uow.transaction():
        uow.record(activity)
    assert uow.activities.list_all() == [activity]


def test_record_outside_transaction_is_a_bug() -> None:
    uow = InMemoryUnitOfWork()
    with pytest.raises(RuntimeError):
        uow.record(Activity.new(type="signup", message="hi", created_at=0))


def test_nested_transaction_joins_outer() -> None:
    uow = InMemoryUnitOfWork()
    activity = Activity.new(type="signup", message="inner", created_at=0)

    with pytest.raises(ConflictError):
        with uow.transaction():
            with uow.transaction():
                uow.record(activity)
            raise ConflictError("outer fails after inner finished")

    assert uow.activities.list_all() == []


def test_reset_clears_all_repos(student, course) -> None:
    enrollment_service.enroll_direct(unit_of_work, principal_for(student), course.id)
    unit_of_work.reset()
    assert unit_of_work.users.list_all() == []
    assert unit_of_work.courses.list_all() == []
    assert unit_of_work.enrollments.list_all() == []
    assert unit_of_work.activities.list_all() == []
