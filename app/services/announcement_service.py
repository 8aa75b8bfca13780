"""Site announcements: a public feed that admins curate."""

from __future__ import annotations

import logging
from dataclasses import replace
from uuid import UUID

from app.core.clock import now_ts
from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.models.announcement import ANNOUNCEMENT_TYPES, Announcement
from app.models.principal import Principal
from app.repos.unit_of_work import UnitOfWork
from app.services import authz

logger = logging.getLogger(__name__)


def _require_admin(actor: Principal) -> None:
    if not authz.can_manage_catalog(actor):
        logger.warning("Announcement change denied for user=%s", actor.user_id)
        raise ForbiddenError("Only an admin can manage announcements")


def _load(uow: UnitOfWork, announcement_id: UUID) -> Announcement:
    announcement = uow.announcements.get(announcement_id)
    if announcement is None:
        raise NotFoundError("Announcement", announcement_id)
    return announcement


def _check_type(type: str) -> None:
    if type not in ANNOUNCEMENT_TYPES:
        raise ValidationError(f"Announcement type must be one of {', '.join(ANNOUNCEMENT_TYPES)}")


def list_announcements(uow: UnitOfWork, *, active_only: bool = True) -> list[Announcement]:
    """Newest first."""
    with uow.reading():
        return uow.announcements.list_all(active_only=active_only)


def create_announcement(
    uow: UnitOfWork, actor: Principal, *, title: str, content: str, type: str = "info"
) -> Announcement:
    _require_admin(actor)
    _check_type(type)
    announcement = Announcement.new(
        title=title.strip(), content=content, type=type, created_at=now_ts()
    )
    with uow.transaction():
        uow.announcements.add(announcement)
    logger.info("Announcement %s created by user=%s", announcement.id, actor.user_id)
    return announcement


def update_announcement(
    uow: UnitOfWork,
    actor: Principal,
    announcement_id: UUID,
    *,
    title: str | None = None,
    content: str | None = None,
    type: str | None = None,
    active: bool | None = None,
) -> Announcement:
    """Partial update; ``None`` keeps the current value."""
    _require_admin(actor)
    changes = {
        k: v
        for k, v in {"title": title, "content": content, "type": type, "active": active}.items()
        if v is not None
    }
    if "type" in changes:
        _check_type(changes["type"])

    with uow.transaction():
        updated = replace(_load(uow, announcement_id), **changes)
        uow.announcements.save(updated)
    logger.info(
        "Announcement %s updated fields=%s by user=%s",
        announcement_id,
        sorted(changes),
        actor.user_id,
    )
    return updated


def set_announcement_active(
    uow: UnitOfWork, actor: Principal, announcement_id: UUID, active: bool
) -> Announcement:
    return update_announcement(uow, actor, announcement_id, active=active)


def delete_announcement(uow: UnitOfWork, actor: Principal, announcement_id: UUID) -> None:
    _require_admin(actor)
    with uow.transaction():
        _load(uow, announcement_id)
        uow.announcements.delete(announcement_id)
    logger.info("Announcement %s deleted by user=%s", announcement_id, actor.user_id)
