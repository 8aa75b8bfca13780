"""Site announcements: a public feed plus admin management."""

from __future__ import annotations

from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict, Field

from app.api.dependencies import require_role
from app.models.principal import Principal
from app.repos.unit_of_work import unit_of_work
from app.services import announcement_service

router = APIRouter(prefix="/v1/announcements", tags=["announcements"])

AnnouncementType = Literal["info", "warning", "success"]


class AnnouncementIn(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    type: AnnouncementType = "info"


class AnnouncementUpdateIn(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    content: str | None = Field(default=None, min_length=1)
    type: AnnouncementType | None = None
    active: bool | None = None


class ActiveIn(BaseModel):
    active: bool


class AnnouncementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    content: str
    type: str
    active: bool
    created_at: int


@router.get("", response_model=list[AnnouncementOut])
def list_announcements(active: bool = True) -> list[AnnouncementOut]:
    items = announcement_service.list_announcements(unit_of_work, active_only=active)
    return [AnnouncementOut.model_validate(a) for a in items]


@router.post("", response_model=AnnouncementOut, status_code=status.HTTP_201_CREATED)
def create_announcement(
    payload: AnnouncementIn,
    principal: Annotated[Principal, Depends(require_role("admin"))],
) -> AnnouncementOut:
    announcement = announcement_service.create_announcement(
        unit_of_work,
        principal,
        title=payload.title,
        content=payload.content,
        type=payload.type,
    )
    return AnnouncementOut.model_validate(announcement)


@router.put("/{announcement_id}", response_model=AnnouncementOut)
def update_announcement(
    announcement_id: UUID,
    payload: AnnouncementUpdateIn,
    principal: Annotated[Principal, Depends(require_role("admin"))],
) -> AnnouncementOut:
    updated = announcement_service.update_announcement(
        unit_of_work, principal, announcement_id, **payload.model_dump(exclude_none=True)
    )
    return AnnouncementOut.model_validate(updated)


@router.put("/{announcement_id}/active", response_model=AnnouncementOut)
def set_announcement_active(
    announcement_id: UUID,
    payload: ActiveIn,
    principal: Annotated[Principal, Depends(require_role("admin"))],
) -> AnnouncementOut:
    updated = announcement_service.set_announcement_active(
        unit_of_work, principal, announcement_id, payload.active
    )
    return AnnouncementOut.model_validate(updated)


@router.delete("/{announcement_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_announcement(
    announcement_id: UUID,
    principal: Annotated[Principal, Depends(require_role("admin"))],
) -> Response:
    announcement_service.delete_announcement(unit_of_work, principal, announcement_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
