from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict

from app.api.courses import CourseOut, course_out
from app.api.dependencies import require_role
from app.api.enrollments import EnrollmentOut
from app.api.payments import TransactionOut
from app.models.principal import Principal
from app.repos.unit_of_work import unit_of_work
from app.services import (
    analytics_service,
    course_service,
    enrollment_service,
    moderation,
    user_service,
)
from app.services.cache import invalidate_catalog

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

AdminPrincipal = Annotated[Principal, Depends(require_role("admin"))]


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str
    role: str
    is_active: bool
    created_at: int


class RoleIn(BaseModel):
    role: str


class UserStatusIn(BaseModel):
    # active|suspended
    status: str


class CourseStatusIn(BaseModel):
    status: str
    reason: str | None = None


class FeaturedIn(BaseModel):
    # Omitted: flip the current value
    is_featured: bool | None = None


class ManualEnrollIn(BaseModel):
    user_id: UUID
    course_id: UUID


class ResolutionIn(BaseModel):
    status: str


class ActivityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: str
    message: str
    user_id: UUID | None
    course_id: UUID | None
    metadata: dict[str, str]
    created_at: int


class MonthRevenue(BaseModel):
    month: str
    revenue: float
    sales: int


class CategoryStudents(BaseModel):
    category: str
    students: int


class OverviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_users: int
    total_students: int
    total_instructors: int
    total_courses: int
    published_courses: int
    pending_courses: int
    total_enrollments: int
    pending_enrollments: int
    total_revenue: float


class AnalyticsOut(BaseModel):
    overview: OverviewOut
    revenue_by_month: list[MonthRevenue]
    students_by_category: list[CategoryStudents]


class ReconcileOut(BaseModel):
    changed: int
    course_students: dict[str, tuple[int, int]]
    course_ratings: dict[str, tuple[float, float]]
    category_counts: dict[str, tuple[int, int]]


# --- Users -------------------------------------------------------------------


@router.get("/users", response_model=list[UserOut])
def admin_list_users(
    principal: AdminPrincipal, role: str | None = None
) -> list[UserOut]:
    users = user_service.list_users(unit_of_work, principal, role)
    return [UserOut.model_validate(u) for u in users]


@router.put("/users/{user_id}/role", response_model=UserOut)
def set_user_role(user_id: UUID, payload: RoleIn, principal: AdminPrincipal) -> UserOut:
    """Takes effect at the user's next login."""
    user = user_service.set_user_role(unit_of_work, principal, user_id, payload.role)
    return UserOut.model_validate(user)


@router.put("/users/{user_id}/status", response_model=UserOut)
def set_user_status(
    user_id: UUID, payload: UserStatusIn, principal: AdminPrincipal
) -> UserOut:
    user = user_service.set_user_status(unit_of_work, principal, user_id, payload.status)
    return UserOut.model_validate(user)


# --- Course moderation ---------------------------------------------------------


@router.get("/courses", response_model=list[CourseOut])
def moderation_queue(
    principal: AdminPrincipal,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> list[CourseOut]:
    """Pending and pending-unpublish courses by default; ``status=all`` for every course."""
    courses = course_service.moderation_queue(unit_of_work, status_filter)
    return [course_out(c) for c in courses]


@router.put("/courses/{course_id}/status", response_model=CourseOut)
async def set_course_status(
    course_id: UUID, payload: CourseStatusIn, principal: AdminPrincipal
) -> CourseOut:
    course = await run_in_threadpool(
        moderation.transition_course,
        unit_of_work, principal, course_id, payload.status, payload.reason
    )
    await invalidate_catalog()
    return course_out(course)


@router.put("/courses/{course_id}/featured", response_model=CourseOut)
async def set_course_featured(
    course_id: UUID, payload: FeaturedIn, principal: AdminPrincipal
) -> CourseOut:
    course = await run_in_threadpool(
        course_service.set_featured,
        unit_of_work, principal, course_id, payload.is_featured
    )
    await invalidate_catalog()
    return course_out(course)


# --- Enrollments ---------------------------------------------------------------


@router.get("/enrollments", response_model=list[EnrollmentOut])
def list_enrollments(
    principal: AdminPrincipal,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> list[EnrollmentOut]:
    items = enrollment_service.list_enrollments(unit_of_work, status_filter)
    return [EnrollmentOut.model_validate(e) for e in items]


@router.post(
    "/enrollments", response_model=EnrollmentOut, status_code=status.HTTP_201_CREATED
)
async def manual_enroll(payload: ManualEnrollIn, principal: AdminPrincipal) -> EnrollmentOut:
    enrollment = await run_in_threadpool(
        enrollment_service.manual_enroll,
        unit_of_work, principal, payload.user_id, payload.course_id
    )
    await invalidate_catalog()
    return EnrollmentOut.model_validate(enrollment)


@router.put("/enrollments/{enrollment_id}/status", response_model=EnrollmentOut)
async def resolve_enrollment(
    enrollment_id: UUID, payload: ResolutionIn, principal: AdminPrincipal
) -> EnrollmentOut:
    enrollment = await run_in_threadpool(
        enrollment_service.resolve_enrollment,
        unit_of_work, principal, enrollment_id, payload.status
    )
    await invalidate_catalog()
    return EnrollmentOut.model_validate(enrollment)


@router.delete("/enrollments/{enrollment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unenroll(enrollment_id: UUID, principal: AdminPrincipal) -> Response:
    await run_in_threadpool(
        enrollment_service.unenroll, unit_of_work, principal, enrollment_id
    )
    await invalidate_catalog()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Read models -----------------------------------------------------------------


@router.get("/transactions", response_model=list[TransactionOut])
def list_transactions(
    principal: AdminPrincipal,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> list[TransactionOut]:
    items = enrollment_service.list_transactions(unit_of_work, status_filter)
    return [TransactionOut.model_validate(t) for t in items]


@router.get("/activities", response_model=list[ActivityOut])
def list_activities(
    principal: AdminPrincipal,
    limit: Annotated[int, Query(ge=1, le=200)] = 20,
) -> list[ActivityOut]:
    items = analytics_service.recent_activities(unit_of_work, limit)
    return [ActivityOut.model_validate(a) for a in items]


@router.get("/analytics", response_model=AnalyticsOut)
def analytics(principal: AdminPrincipal) -> AnalyticsOut:
    return AnalyticsOut(
        overview=OverviewOut.model_validate(analytics_service.overview(unit_of_work)),
        revenue_by_month=[
            MonthRevenue(month=m, revenue=r, sales=s)
            for m, r, s in analytics_service.revenue_by_month(unit_of_work)
        ],
        students_by_category=[
            CategoryStudents(category=c, students=n)
            for c, n in analytics_service.students_by_category(unit_of_work)
        ],
    )


@router.post("/reconcile", response_model=ReconcileOut)
async def reconcile(principal: AdminPrincipal) -> ReconcileOut:
    report = await run_in_threadpool(analytics_service.reconcile_counters, unit_of_work)
    logger.info("Counter reconciliation run by user=%s", principal.user_id)
    await invalidate_catalog()
    return ReconcileOut(
        changed=report.changed,
        course_students=report.course_students,
        course_ratings=report.course_ratings,
        category_counts=report.category_counts,
    )
