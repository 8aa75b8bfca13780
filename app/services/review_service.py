from __future__ import annotations

import logging
from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from app.core.clock import now_ts
from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.models.activity import Activity
from app.models.course import Course
from app.models.principal import Principal
from app.models.review import Review
from app.repos.unit_of_work import UnitOfWork
from app.services import progress

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 1000


def round_rating(value: float) -> float:
    """Half-up to one decimal, like progress: a 4.25 mean reads as 4.3."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def aggregate(reviews: list[Review]) -> tuple[float, int]:
    """(mean rating rounded to one decimal, review count)."""
    if not reviews:
        return 0.0, 0
    mean = sum(r.rating for r in reviews) / len(reviews)
    return round_rating(mean), len(reviews)


def _refresh_rating(uow: UnitOfWork, course: Course) -> Course:
    rating, count = aggregate(uow.reviews.list_by_course(course.id))
    updated = replace(course, rating=rating, review_count=count)
    uow.courses.save(updated)
    return updated


def upsert_review(
    uow: UnitOfWork,
    actor: Principal,
    course_id: UUID,
    rating: int,
    comment: str = "",
) -> Review:
    """Create or replace the caller's review of a course they completed."""
    if not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5")
    comment = comment.strip()
    if len(comment) > MAX_COMMENT_LENGTH:
        raise ValidationError(f"Comment must be at most {MAX_COMMENT_LENGTH} characters")

    with uow.transaction():
        course = uow.courses.get(course_id)
        if course is None:
            raise NotFoundError("Course", course_id)
        enrollment = uow.enrollments.get_for(actor.uid, course_id)
        if enrollment is None or enrollment.status != "active":
            logger.warning(
                "Review denied: user=%s has no active enrollment in course=%s",
                actor.user_id,
                course_id,
            )
            raise ForbiddenError("You must be enrolled in this course to review it")
        if not progress.can_review(enrollment, course):
            raise ValidationError("Complete every lesson before reviewing this course")

        now = now_ts()
        existing = uow.reviews.get_for(course_id, actor.uid)
        if existing is None:
            review = Review.new(
                course_id=course_id,
                student_id=actor.uid,
                rating=rating,
                comment=comment,
                created_at=now,
            )
            uow.reviews.add(review)
            uow.record(
                Activity.new(
                    type="review",
                    message=f"New {rating}-star review on '{course.title}'",
                    created_at=now,
                    user_id=actor.uid,
                    course_id=course_id,
                )
            )
        else:
            review = replace(existing, rating=rating, comment=comment, updated_at=now)
            uow.reviews.save(review)
        _refresh_rating(uow, course)

    logger.info(
        "Review %s user=%s course=%s rating=%d",
        "created" if existing is None else "updated",
        actor.user_id,
        course_id,
        rating,
    )
    return review


def list_reviews(uow: UnitOfWork, course_id: UUID) -> list[Review]:
    with uow.reading():
        return uow.reviews.list_by_course(course_id)


def get_own_review(uow: UnitOfWork, actor: Principal, course_id: UUID) -> Review | None:
    with uow.reading():
        return uow.reviews.get_for(course_id, actor.uid)
