from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from uuid import UUID

from app.core.clock import now_ts
from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.models.activity import Activity
from app.models.course import (
    COURSE_LEVELS,
    COURSE_STATUSES,
    PUBLIC_STATUSES,
    Course,
    Section,
    slugify,
)
from app.models.principal import Principal
from app.repos.unit_of_work import UnitOfWork
from app.services import authz

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CourseContent:
    """Editable content of a course, as supplied by its author."""

    title: str
    short_description: str
    description: str
    price: float
    category: str
    level: str = "beginner"
    thumbnail: str = "/placeholder.svg"
    preview_video_url: str = ""
    sections: tuple[Section, ...] = ()


def _validate_content(uow: UnitOfWork, content: CourseContent) -> None:
    if not content.title.strip():
        raise ValidationError("Course title is required")
    if content.price < 0:
        raise ValidationError("Price must be zero or more")
    if content.level not in COURSE_LEVELS:
        raise ValidationError(f"Unknown course level: {content.level}")
    if uow.categories.get_by_name(content.category) is None:
        raise ValidationError(f"Unknown category: {content.category}")

    seen: set[str] = set()
    for section in content.sections:
        for lesson in section.lessons:
            if lesson.id in seen:
                raise ValidationError(f"Duplicate lesson id: {lesson.id}")
            seen.add(lesson.id)


def _load(uow: UnitOfWork, course_id: UUID) -> Course:
    course = uow.courses.get(course_id)
    if course is None:
        raise NotFoundError("Course", course_id)
    return course


def create_course(uow: UnitOfWork, actor: Principal, content: CourseContent) -> Course:
    if not authz.can_create_course(actor):
        logger.warning("Course creation denied for user=%s", actor.user_id)
        raise ForbiddenError("Only instructors can create courses")

    with uow.transaction():
        _validate_content(uow, content)
        category = uow.categories.get_by_name(content.category)
        now = now_ts()
        course = Course.new(
            instructor_id=actor.uid,
            title=content.title.strip(),
            short_description=content.short_description,
            description=content.description,
            price=content.price,
            # Store the canonical spelling of the category name
            category=category.name,
            level=content.level,
            thumbnail=content.thumbnail,
            preview_video_url=content.preview_video_url,
            sections=content.sections,
            created_at=now,
        )
        uow.courses.add(course)
        uow.categories.adjust_count(course.category, +1)
        uow.record(
            Activity.new(
                type="course_created",
                message=f"New course '{course.title}' was created",
                created_at=now,
                user_id=actor.uid,
                course_id=course.id,
            )
        )

    logger.info("Created course id=%s by user=%s", course.id, actor.user_id)
    return course


def update_course(
    uow: UnitOfWork, actor: Principal, course_id: UUID, content: CourseContent
) -> Course:
    """Replace the content of a course. Status is never touched here."""
    with uow.transaction():
        course = _load(uow, course_id)
        if not authz.can_edit_course(actor, course):
            logger.warning(
                "Course update denied: user=%s course=%s", actor.user_id, course_id
            )
            raise ForbiddenError("You can only edit your own courses")

        _validate_content(uow, content)
        category = uow.categories.get_by_name(content.category)
        title = content.title.strip()
        updated = replace(
            course,
            title=title,
            slug=slugify(title),
            short_description=content.short_description,
            description=content.description,
            price=content.price,
            category=category.name,
            level=content.level,
            thumbnail=content.thumbnail,
            preview_video_url=content.preview_video_url,
            sections=content.sections,
            updated_at=now_ts(),
        )
        uow.courses.save(updated)
        if updated.category != course.category:
            uow.categories.adjust_count(course.category, -1)
            uow.categories.adjust_count(updated.category, +1)

    logger.info("Updated course id=%s by user=%s", course_id, actor.user_id)
    return updated


def delete_course(uow: UnitOfWork, actor: Principal, course_id: UUID) -> None:
    """Delete a course with its enrollments and reviews.

    Pending transactions of the course are marked failed, so none is
    left waiting on an enrollment that no longer exists.
    """
    with uow.transaction():
        course = _load(uow, course_id)
        if not authz.can_edit_course(actor, course):
            logger.warning(
                "Course delete denied: user=%s course=%s", actor.user_id, course_id
            )
            raise ForbiddenError("You can only delete your own courses")

        now = now_ts()
        removed = uow.enrollments.delete_by_course(course_id)
        for txn in uow.transactions.list_by_course(course_id):
            if txn.status == "pending":
                uow.transactions.save(replace(txn, status="failed", updated_at=now))
        reviews = uow.reviews.delete_by_course(course_id)
        uow.courses.delete(course_id)
        uow.categories.adjust_count(course.category, -1)

    logger.info(
        "Deleted course id=%s (%d enrollments, %d reviews) by user=%s",
        course_id,
        len(removed),
        reviews,
        actor.user_id,
    )


def get_course(uow: UnitOfWork, actor: Principal | None, course_id: UUID) -> Course:
    with uow.reading():
        course = uow.courses.get(course_id)
    # Hidden courses look the same as missing ones
    if course is None or not authz.can_view_course(actor, course):
        raise NotFoundError("Course", course_id)
    return course


def list_courses(
    uow: UnitOfWork,
    actor: Principal | None,
    *,
    category: str | None = None,
    level: str | None = None,
    featured: bool | None = None,
    search: str | None = None,
    status: str | None = None,
) -> list[Course]:
    """Visible courses, newest first.

    ``status`` is honoured for admins only ("all" or one status); everyone
    else always gets the public catalog.
    """
    with uow.reading():
        courses = uow.courses.list_all()

    if actor is not None and actor.is_admin() and status:
        if status != "all":
            if status not in COURSE_STATUSES:
                raise ValidationError(f"Unknown course status: {status}")
            courses = [c for c in courses if c.status == status]
    else:
        courses = [c for c in courses if c.status in PUBLIC_STATUSES]

    if category:
        wanted = category.casefold()
        courses = [c for c in courses if c.category.casefold() == wanted]
    if level:
        courses = [c for c in courses if c.level == level]
    if featured is not None:
        courses = [c for c in courses if c.is_featured == featured]
    if search:
        needle = search.casefold()
        courses = [
            c
            for c in courses
            if needle in c.title.casefold()
            or needle in c.short_description.casefold()
            or needle in c.description.casefold()
        ]
    return courses


def list_instructor_courses(uow: UnitOfWork, actor: Principal) -> list[Course]:
    with uow.reading():
        return uow.courses.list_by_instructor(actor.uid)


def moderation_queue(uow: UnitOfWork, status: str | None = None) -> list[Course]:
    """Courses waiting on an admin decision, or every course of one status."""
    with uow.reading():
        courses = uow.courses.list_all()
    if status is None:
        return [c for c in courses if c.status in ("pending", "pending_unpublish")]
    if status == "all":
        return courses
    if status not in COURSE_STATUSES:
        raise ValidationError(f"Unknown course status: {status}")
    return [c for c in courses if c.status == status]


def set_featured(
    uow: UnitOfWork, actor: Principal, course_id: UUID, featured: bool | None = None
) -> Course:
    """Set the featured flag, or flip it when ``featured`` is None."""
    if not authz.can_manage_catalog(actor):
        raise ForbiddenError("Only an admin can feature courses")

    with uow.transaction():
        course = _load(uow, course_id)
        value = (not course.is_featured) if featured is None else featured
        updated = replace(course, is_featured=value, updated_at=now_ts())
        uow.courses.save(updated)

    logger.info("Course %s featured=%s by user=%s", course_id, value, actor.user_id)
    return updated
