"""Student enrollment and lesson progress endpoints."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict

from app.api.courses import CourseOut, course_out
from app.api.dependencies import require_role
from app.models.principal import Principal
from app.repos.unit_of_work import unit_of_work
from app.services import enrollment_service
from app.services.cache import invalidate_catalog

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


class EnrollmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_id: UUID
    course_id: UUID
    status: str
    progress: int
    completed_lessons: list[str]
    payment_reference: str | None
    enrolled_at: int
    last_accessed: int


class EnrollmentWithCourseOut(BaseModel):
    enrollment: EnrollmentOut
    course: CourseOut


class LessonProgressIn(BaseModel):
    lesson_id: str
    completed: bool = True


@router.get("", response_model=list[EnrollmentWithCourseOut])
def my_enrollments(
    principal: Annotated[Principal, Depends(require_role("student"))],
) -> list[EnrollmentWithCourseOut]:
    rows = enrollment_service.list_own_enrollments(unit_of_work, principal)
    return [
        EnrollmentWithCourseOut(
            enrollment=EnrollmentOut.model_validate(enrollment), course=course_out(course)
        )
        for enrollment, course in rows
    ]


@router.post(
    "/{course_id}",
    response_model=EnrollmentOut,
    status_code=status.HTTP_201_CREATED,
)
async def enroll(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_role("student"))],
) -> EnrollmentOut:
    enrollment = await run_in_threadpool(
        enrollment_service.enroll_direct, unit_of_work, principal, course_id
    )
    # Student counts are part of the catalog
    await invalidate_catalog()
    return EnrollmentOut.model_validate(enrollment)


@router.get("/{course_id}/progress", response_model=EnrollmentOut)
def get_progress(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_role("student"))],
) -> EnrollmentOut:
    enrollment = enrollment_service.get_progress(unit_of_work, principal, course_id)
    return EnrollmentOut.model_validate(enrollment)


@router.put("/{course_id}/progress", response_model=EnrollmentOut)
def update_progress(
    course_id: UUID,
    payload: LessonProgressIn,
    principal: Annotated[Principal, Depends(require_role("student"))],
) -> EnrollmentOut:
    enrollment = enrollment_service.update_lesson_completion(
        unit_of_work, principal, course_id, payload.lesson_id, payload.completed
    )
    return EnrollmentOut.model_validate(enrollment)
