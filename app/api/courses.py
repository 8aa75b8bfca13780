"""Course catalog, authoring, moderation requests and reviews.

Anonymous catalog listings go through the read-through cache (see
app/services/cache.py); every endpoint here that changes what the
catalog shows drops the cached pages before returning.

Async handlers (the ones that touch the cache) run the service call in the
thread pool: services take the store lock, which must never block the
event loop.
"""

from __future__ import annotations

import json
import logging
from typing import Annotated
from uuid import UUID, uuid4

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict, Field

from app.api.dependencies import optional_user, require_any_role, require_role, require_user
from app.core.config import SETTINGS
from app.models.course import Course, Lesson, Section
from app.models.principal import Principal
from app.repos.unit_of_work import unit_of_work
from app.services import (
    analytics_service,
    course_service,
    enrollment_service,
    moderation,
    review_service,
)
from app.services.cache import cache_service, cached_get, catalog_key, invalidate_catalog

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/courses", tags=["courses"])


# --- Schemas ---------------------------------------------------------------


class LessonIn(BaseModel):
    id: str | None = None  # kept when editing so progress survives the edit
    title: str = Field(min_length=1)
    description: str = ""
    video_url: str = ""
    duration: int = Field(default=0, ge=0)
    order: int | None = None


class SectionIn(BaseModel):
    id: str | None = None
    title: str = Field(min_length=1)
    lessons: list[LessonIn] = []


class CourseIn(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    short_description: str = ""
    description: str = ""
    price: float = Field(default=0.0, ge=0)
    category: str = Field(min_length=1)
    level: str = "beginner"
    thumbnail: str = "/placeholder.svg"
    preview_video_url: str = ""
    sections: list[SectionIn] = []

    def to_content(self) -> course_service.CourseContent:
        sections = tuple(
            Section(
                id=section.id or uuid4().hex,
                title=section.title,
                lessons=tuple(
                    Lesson(
                        id=lesson.id or uuid4().hex,
                        title=lesson.title,
                        video_url=lesson.video_url,
                        duration=lesson.duration,
                        order=lesson.order if lesson.order is not None else position,
                        description=lesson.description,
                    )
                    for position, lesson in enumerate(section.lessons)
                ),
            )
            for section in self.sections
        )
        return course_service.CourseContent(
            title=self.title,
            short_description=self.short_description,
            description=self.description,
            price=self.price,
            category=self.category,
            level=self.level,
            thumbnail=self.thumbnail,
            preview_video_url=self.preview_video_url,
            sections=sections,
        )


class LessonOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    video_url: str
    duration: int
    order: int


class SectionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    lessons: list[LessonOut]


class CourseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    instructor_id: UUID
    title: str
    slug: str
    short_description: str
    description: str
    price: float
    category: str
    level: str
    thumbnail: str
    preview_video_url: str
    sections: list[SectionOut]
    status: str
    rejection_reason: str | None
    is_featured: bool
    students: int
    rating: float
    review_count: int
    created_at: int
    updated_at: int


class ReviewIn(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str = Field(default="", max_length=1000)


class ReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    student_id: UUID
    rating: int
    comment: str
    created_at: int
    updated_at: int


class InstructorStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_courses: int
    published_courses: int
    total_students: int
    average_rating: float
    total_earnings: float


class CourseStudentOut(BaseModel):
    enrollment_id: UUID
    student_id: UUID
    name: str
    email: str
    status: str
    progress: int
    completed_lessons: list[str]
    enrolled_at: int
    last_accessed: int


class CourseRevenueOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course_id: UUID
    title: str
    revenue: float
    sales: int


class MonthRevenueOut(BaseModel):
    month: str
    revenue: float
    sales: int


class InstructorRevenueOut(BaseModel):
    total_revenue: float
    total_sales: int
    by_course: list[CourseRevenueOut]
    by_month: list[MonthRevenueOut]


def course_out(course: Course) -> CourseOut:
    return CourseOut.model_validate(course)


# --- Catalog ---------------------------------------------------------------


@router.get("", response_model=list[CourseOut])
async def list_courses(
    principal: Annotated[Principal | None, Depends(optional_user)],
    category: str | None = None,
    level: str | None = None,
    featured: bool | None = None,
    search: str | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> list[CourseOut]:
    """Visible courses, newest first.

    Anonymous requests are served from the catalog cache when possible.
    """
    if principal is not None:
        courses = await run_in_threadpool(
            course_service.list_courses,
            unit_of_work,
            principal,
            category=category,
            level=level,
            featured=featured,
            search=search,
            status=status_filter,
        )
        return [course_out(c) for c in courses]

    key = catalog_key(category=category, level=level, featured=featured, search=search)
    cached = await cached_get(key)
    if cached is not None:
        return [CourseOut.model_validate(item) for item in json.loads(cached)]

    courses = await run_in_threadpool(
        course_service.list_courses,
        unit_of_work, None, category=category, level=level, featured=featured, search=search
    )
    result = [course_out(c) for c in courses]
    await cache_service.set(
        key,
        json.dumps([r.model_dump(mode="json") for r in result]),
        SETTINGS.catalog_cache_ttl,
    )
    return result


@router.get("/instructor/my-courses", response_model=list[CourseOut])
def my_courses(
    principal: Annotated[Principal, Depends(require_role("instructor"))],
) -> list[CourseOut]:
    courses = course_service.list_instructor_courses(unit_of_work, principal)
    return [course_out(c) for c in courses]


@router.get("/instructor/stats", response_model=InstructorStatsOut)
def instructor_stats(
    principal: Annotated[Principal, Depends(require_role("instructor"))],
) -> InstructorStatsOut:
    stats = analytics_service.instructor_stats(unit_of_work, principal)
    return InstructorStatsOut.model_validate(stats)


@router.get("/instructor/revenue", response_model=InstructorRevenueOut)
def instructor_revenue(
    principal: Annotated[Principal, Depends(require_role("instructor"))],
) -> InstructorRevenueOut:
    report = analytics_service.instructor_revenue(unit_of_work, principal)
    return InstructorRevenueOut(
        total_revenue=report.total_revenue,
        total_sales=report.total_sales,
        by_course=[CourseRevenueOut.model_validate(r) for r in report.by_course],
        by_month=[
            MonthRevenueOut(month=m, revenue=revenue, sales=sales)
            for m, revenue, sales in report.by_month
        ],
    )


@router.get("/instructor/{course_id}/students", response_model=list[CourseStudentOut])
def course_students(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_any_role({"instructor", "admin"}))],
) -> list[CourseStudentOut]:
    """Owner or admin only; deleted accounts show up with blank name and email."""
    rows = enrollment_service.list_course_students(unit_of_work, principal, course_id)
    return [
        CourseStudentOut(
            enrollment_id=e.id,
            student_id=e.student_id,
            name=user.name if user else "",
            email=user.email if user else "",
            status=e.status,
            progress=e.progress,
            completed_lessons=list(e.completed_lessons),
            enrolled_at=e.enrolled_at,
            last_accessed=e.last_accessed,
        )
        for e, user in rows
    ]


@router.get("/{course_id}", response_model=CourseOut)
def get_course(
    course_id: UUID,
    principal: Annotated[Principal | None, Depends(optional_user)],
) -> CourseOut:
    return course_out(course_service.get_course(unit_of_work, principal, course_id))


# --- Authoring ---------------------------------------------------------------


@router.post("", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
async def create_course(
    payload: CourseIn,
    principal: Annotated[Principal, Depends(require_any_role({"instructor", "admin"}))],
) -> CourseOut:
    course = await run_in_threadpool(
        course_service.create_course, unit_of_work, principal, payload.to_content()
    )
    await invalidate_catalog()
    return course_out(course)


@router.put("/{course_id}", response_model=CourseOut)
async def update_course(
    course_id: UUID,
    payload: CourseIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> CourseOut:
    course = await run_in_threadpool(
        course_service.update_course,
        unit_of_work, principal, course_id, payload.to_content()
    )
    await invalidate_catalog()
    return course_out(course)


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> Response:
    await run_in_threadpool(
        course_service.delete_course, unit_of_work, principal, course_id
    )
    await invalidate_catalog()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{course_id}/submit", response_model=CourseOut)
async def submit_for_review(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> CourseOut:
    course = await run_in_threadpool(
        moderation.submit_for_review, unit_of_work, principal, course_id
    )
    await invalidate_catalog()
    return course_out(course)


@router.put("/{course_id}/request-unpublish", response_model=CourseOut)
async def request_unpublish(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> CourseOut:
    course = await run_in_threadpool(
        moderation.request_unpublish, unit_of_work, principal, course_id
    )
    await invalidate_catalog()
    return course_out(course)


# --- Reviews -----------------------------------------------------------------


@router.get("/{course_id}/reviews", response_model=list[ReviewOut])
def list_reviews(
    course_id: UUID,
    principal: Annotated[Principal | None, Depends(optional_user)],
) -> list[ReviewOut]:
    # Reviews of a hidden course are hidden too
    course_service.get_course(unit_of_work, principal, course_id)
    reviews = review_service.list_reviews(unit_of_work, course_id)
    return [ReviewOut.model_validate(r) for r in reviews]


@router.get("/{course_id}/reviews/me", response_model=ReviewOut | None)
def my_review(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_role("student"))],
) -> ReviewOut | None:
    review = review_service.get_own_review(unit_of_work, principal, course_id)
    return ReviewOut.model_validate(review) if review is not None else None


@router.post("/{course_id}/reviews", response_model=ReviewOut)
async def upsert_review(
    course_id: UUID,
    payload: ReviewIn,
    principal: Annotated[Principal, Depends(require_role("student"))],
) -> ReviewOut:
    review = await run_in_threadpool(
        review_service.upsert_review,
        unit_of_work, principal, course_id, payload.rating, payload.comment
    )
    await invalidate_catalog()
    return ReviewOut.model_validate(review)
