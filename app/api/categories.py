"""Category endpoints. Reads are public; writes are admin-only."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from app.api.dependencies import require_role
from app.models.category import Category
from app.models.principal import Principal
from app.repos.unit_of_work import unit_of_work
from app.services import category_service
from app.services.cache import invalidate_catalog

router = APIRouter(prefix="/v1/categories", tags=["categories"])


class CategoryIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)


class CategoryUpdateIn(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)


class CategoryOut(BaseModel):
    id: UUID
    name: str
    slug: str
    description: str
    course_count: int


def _out(category: Category, course_count: int | None = None) -> CategoryOut:
    return CategoryOut(
        id=category.id,
        name=category.name,
        slug=category.slug,
        description=category.description,
        course_count=category.course_count if course_count is None else course_count,
    )


@router.get("", response_model=list[CategoryOut])
def list_categories(
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> list[CategoryOut]:
    """Categories with live course counts.

    ``status`` selects which courses are counted: ``public`` (default),
    ``all``, or a comma list such as ``draft,pending``.
    """
    rows = category_service.list_categories(unit_of_work, status_filter)
    return [_out(row.category, row.course_count) for row in rows]


@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryIn,
    principal: Annotated[Principal, Depends(require_role("admin"))],
) -> CategoryOut:
    category = await run_in_threadpool(
        category_service.create_category,
        unit_of_work, principal, payload.name, payload.description
    )
    await invalidate_catalog()
    return _out(category)


@router.put("/{category_id}", response_model=CategoryOut)
async def update_category(
    category_id: UUID,
    payload: CategoryUpdateIn,
    principal: Annotated[Principal, Depends(require_role("admin"))],
) -> CategoryOut:
    category = await run_in_threadpool(
        category_service.update_category,
        unit_of_work,
        principal,
        category_id,
        name=payload.name,
        description=payload.description,
    )
    await invalidate_catalog()
    return _out(category)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: UUID,
    principal: Annotated[Principal, Depends(require_role("admin"))],
) -> Response:
    await run_in_threadpool(
        category_service.delete_category, unit_of_work, principal, category_id
    )
    await invalidate_catalog()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
