"""Transactional unit of work over the in-memory repositories.

Every multi-entity workflow step runs inside ``transaction()``:

  1. A process-wide lock is taken, so the precondition reads and the
     writes that follow form one serializable unit.  Two concurrent
     resolutions of the same enrollment queue up behind the lock; the
     second one reads the first one's committed state.
  2. Each repo is snapshotted.  Any exception restores every snapshot,
     so no partial state (a transaction without its enrollment, a bumped
     counter without its status change) is ever visible.
  3. Activities are staged with ``record()`` and only appended to the
     audit log when the unit commits.

Domain errors propagate unchanged after the rollback.  Anything else is
logged and surfaced as a generic ``TransactionFailure``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol

from app.core.errors import MarketplaceError, TransactionFailure
from app.core.metrics import WORKFLOW_ROLLBACKS
from app.models.activity import Activity
from app.repos.activity_repo import ActivityRepo, InMemoryActivityRepo
from app.repos.announcement_repo import AnnouncementRepo, InMemoryAnnouncementRepo
from app.repos.category_repo import CategoryRepo, InMemoryCategoryRepo
from app.repos.course_repo import CourseRepo, InMemoryCourseRepo
from app.repos.enrollment_repo import EnrollmentRepo, InMemoryEnrollmentRepo
from app.repos.review_repo import InMemoryReviewRepo, ReviewRepo
from app.repos.transaction_repo import InMemoryTransactionRepo, TransactionRepo
from app.repos.user_repo import InMemoryUserRepo, UserRepo

logger = logging.getLogger(__name__)


class UnitOfWork(Protocol):
    users: UserRepo
    courses: CourseRepo
    enrollments: EnrollmentRepo
    transactions: TransactionRepo
    categories: CategoryRepo
    reviews: ReviewRepo
    activities: ActivityRepo
    announcements: AnnouncementRepo

    def transaction(self) -> contextmanager: ...  # type: ignore[valid-type]
    def reading(self) -> contextmanager: ...  # type: ignore[valid-type]
    def record(self, activity: Activity) -> None: ...


class InMemoryUnitOfWork:
    def __init__(self) -> None:
        self.users = InMemoryUserRepo()
        self.courses = InMemoryCourseRepo()
        self.enrollments = InMemoryEnrollmentRepo()
        self.transactions = InMemoryTransactionRepo()
        self.categories = InMemoryCategoryRepo()
        self.reviews = InMemoryReviewRepo()
        self.activities = InMemoryActivityRepo()
        self.announcements = InMemoryAnnouncementRepo()

        self._lock = threading.RLock()
        self._depth = 0
        self._staged: list[Activity] = []

    def _repos(self) -> dict[str, object]:
        return {
            "users": self.users,
            "courses": self.courses,
            "enrollments": self.enrollments,
            "transactions": self.transactions,
            "categories": self.categories,
            "reviews": self.reviews,
            "activities": self.activities,
            "announcements": self.announcements,
        }

    @contextmanager
    def transaction(self) -> Iterator[InMemoryUnitOfWork]:
        with self._lock:
            if self._depth > 0:
                # Nested call joins the outer unit; the outer one commits.
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            snapshots = {name: repo.snapshot() for name, repo in self._repos().items()}
            self._staged = []
            self._depth = 1
            try:
                yield self
            except MarketplaceError as exc:
                self._rollback(snapshots)
                WORKFLOW_ROLLBACKS.labels(reason="domain").inc()
                logger.debug("Unit of work rolled back: %s", exc)
                raise
            except Exception as exc:
                self._rollback(snapshots)
                WORKFLOW_ROLLBACKS.labels(reason="unexpected").inc()
                logger.exception("Unit of work failed; all writes rolled back")
                raise TransactionFailure() from exc
            else:
                for activity in self._staged:
                    self.activities.append(activity)
            finally:
                self._staged = []
                self._depth = 0

    @contextmanager
    def reading(self) -> Iterator[InMemoryUnitOfWork]:
        """Consistent read: waits for any in-flight unit to finish."""
        with self._lock:
            yield self

    def record(self, activity: Activity) -> None:
        if self._depth == 0:
            raise RuntimeError("activities can only be recorded inside a transaction")
        self._staged.append(activity)

    def _rollback(self, snapshots: dict[str, dict[str, object]]) -> None:
        for name, repo in self._repos().items():
            repo.restore(snapshots[name])  # type: ignore[attr-defined]
        self._staged = []

    def reset(self) -> None:
        """Drop all state. Used by test fixtures and the seed script."""
        with self._lock:
            for repo in self._repos().values():
                repo.clear()  # type: ignore[attr-defined]


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

unit_of_work = InMemoryUnitOfWork()
