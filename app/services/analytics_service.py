"""Read models over the store: dashboards, roll-ups and counter repair.

Roll-ups are plain queries over the entities.  The denormalized counters
(Course.students, Course.rating/review_count, Category.course_count) are
display caches; ``reconcile_counters`` rebuilds them from the records
they summarize.
"""

from __future__ import annotations

import datetime
import logging
from collections import defaultdict
from dataclasses import dataclass, field, replace
from uuid import UUID

from app.models.activity import Activity
from app.models.principal import Principal
from app.repos.unit_of_work import UnitOfWork
from app.services.review_service import aggregate, round_rating

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Overview:
    total_users: int
    total_students: int
    total_instructors: int
    total_courses: int
    published_courses: int
    pending_courses: int
    total_enrollments: int
    pending_enrollments: int
    total_revenue: float


@dataclass(frozen=True, slots=True)
class InstructorStats:
    total_courses: int
    published_courses: int
    total_students: int
    average_rating: float
    total_earnings: float


@dataclass(frozen=True, slots=True)
class CourseRevenue:
    course_id: UUID
    title: str
    revenue: float
    sales: int


@dataclass(frozen=True, slots=True)
class InstructorRevenue:
    total_revenue: float
    total_sales: int
    by_course: list[CourseRevenue]
    by_month: list[tuple[str, float, int]]


@dataclass(slots=True)
class ReconcileReport:
    course_students: dict[str, tuple[int, int]] = field(default_factory=dict)
    course_ratings: dict[str, tuple[float, float]] = field(default_factory=dict)
    category_counts: dict[str, tuple[int, int]] = field(default_factory=dict)

    @property
    def changed(self) -> int:
        return (
            len(self.course_students)
            + len(self.course_ratings)
            + len(self.category_counts)
        )


def _month(ts: int) -> str:
    return datetime.datetime.fromtimestamp(ts, datetime.UTC).strftime("%Y-%m")


def overview(uow: UnitOfWork) -> Overview:
    with uow.reading():
        users = uow.users.list_all()
        courses = uow.courses.list_all()
        enrollments = uow.enrollments.list_all()
        transactions = uow.transactions.list_all()

    return Overview(
        total_users=len(users),
        total_students=sum(1 for u in users if u.role == "student"),
        total_instructors=sum(1 for u in users if u.role == "instructor"),
        total_courses=len(courses),
        published_courses=sum(1 for c in courses if c.status == "published"),
        pending_courses=sum(1 for c in courses if c.status == "pending"),
        total_enrollments=len(enrollments),
        pending_enrollments=sum(1 for e in enrollments if e.status == "pending"),
        total_revenue=round(
            sum(t.amount for t in transactions if t.status == "completed"), 2
        ),
    )


def revenue_by_month(uow: UnitOfWork) -> list[tuple[str, float, int]]:
    """(YYYY-MM, revenue, sales) for completed transactions, oldest first."""
    with uow.reading():
        transactions = uow.transactions.list_all()

    revenue: dict[str, float] = defaultdict(float)
    sales: dict[str, int] = defaultdict(int)
    for t in transactions:
        if t.status != "completed":
            continue
        month = _month(t.updated_at or t.created_at)
        revenue[month] += t.amount
        sales[month] += 1
    return [(m, round(revenue[m], 2), sales[m]) for m in sorted(revenue)]


def students_by_category(uow: UnitOfWork) -> list[tuple[str, int]]:
    """Active enrollments grouped by course category, largest first."""
    with uow.reading():
        courses = {c.id: c for c in uow.courses.list_all()}
        enrollments = uow.enrollments.list_all()

    counts: dict[str, int] = defaultdict(int)
    for e in enrollments:
        course = courses.get(e.course_id)
        if course is not None and e.status == "active":
            counts[course.category] += 1
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))


def instructor_stats(uow: UnitOfWork, actor: Principal) -> InstructorStats:
    with uow.reading():
        courses = uow.courses.list_by_instructor(actor.uid)
        course_ids = {c.id for c in courses}
        earnings = sum(
            t.amount
            for t in uow.transactions.list_all()
            if t.course_id in course_ids and t.status == "completed"
        )

    rated = [c for c in courses if c.review_count > 0]
    average = round_rating(sum(c.rating for c in rated) / len(rated)) if rated else 0.0
    return InstructorStats(
        total_courses=len(courses),
        published_courses=sum(1 for c in courses if c.status == "published"),
        total_students=sum(c.students for c in courses),
        average_rating=average,
        total_earnings=round(earnings, 2),
    )


def instructor_revenue(uow: UnitOfWork, actor: Principal) -> InstructorRevenue:
    """Completed sales of the caller's courses, per course and per month."""
    with uow.reading():
        courses = uow.courses.list_by_instructor(actor.uid)
        sold = [
            t
            for c in courses
            for t in uow.transactions.list_by_course(c.id)
            if t.status == "completed"
        ]

    per_course: dict[UUID, list[float]] = defaultdict(list)
    revenue: dict[str, float] = defaultdict(float)
    sales: dict[str, int] = defaultdict(int)
    for t in sold:
        per_course[t.course_id].append(t.amount)
        month = _month(t.updated_at or t.created_at)
        revenue[month] += t.amount
        sales[month] += 1

    by_course = [
        CourseRevenue(
            course_id=c.id,
            title=c.title,
            revenue=round(sum(per_course[c.id]), 2),
            sales=len(per_course[c.id]),
        )
        for c in courses
    ]
    by_course.sort(key=lambda r: (-r.revenue, r.title))
    return InstructorRevenue(
        total_revenue=round(sum(t.amount for t in sold), 2),
        total_sales=len(sold),
        by_course=by_course,
        by_month=[(m, round(revenue[m], 2), sales[m]) for m in sorted(revenue)],
    )


def recent_activities(uow: UnitOfWork, limit: int = 20) -> list[Activity]:
    with uow.reading():
        return uow.activities.list_recent(limit)


def reconcile_counters(uow: UnitOfWork) -> ReconcileReport:
    """Recompute every denormalized counter and report what drifted."""
    report = ReconcileReport()
    with uow.transaction():
        for course in uow.courses.list_all():
            students = sum(
                1 for e in uow.enrollments.list_by_course(course.id) if e.status == "active"
            )
            rating, review_count = aggregate(uow.reviews.list_by_course(course.id))

            drifted = False
            if students != course.students:
                report.course_students[str(course.id)] = (course.students, students)
                drifted = True
            if (rating, review_count) != (course.rating, course.review_count):
                report.course_ratings[str(course.id)] = (course.rating, rating)
                drifted = True
            if drifted:
                uow.courses.save(
                    replace(
                        course, students=students, rating=rating, review_count=review_count
                    )
                )

        for category in uow.categories.list_all():
            actual = uow.courses.count_by_category(category.name)
            if actual != category.course_count:
                report.category_counts[category.name] = (category.course_count, actual)
                uow.categories.save(replace(category, course_count=actual))

    logger.info("Reconciled counters: %d value(s) corrected", report.changed)
    return report
