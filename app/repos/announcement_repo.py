from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.models.announcement import Announcement
from app.repos.memory import SnapshotMixin


class AnnouncementRepo(Protocol):
    def get(self, announcement_id: UUID) -> Announcement | None: ...
    def add(self, announcement: Announcement) -> None: ...
    def save(self, announcement: Announcement) -> None: ...
    def delete(self, announcement_id: UUID) -> bool: ...
    def list_all(self, *, active_only: bool = False) -> list[Announcement]: ...


class InMemoryAnnouncementRepo(SnapshotMixin):
    _state_attrs = ("_by_id",)

    def __init__(self) -> None:
        self._by_id: dict[UUID, Announcement] = {}

    def get(self, announcement_id: UUID) -> Announcement | None:
        return self._by_id.get(announcement_id)

    def add(self, announcement: Announcement) -> None:
        self._by_id[announcement.id] = announcement

    def save(self, announcement: Announcement) -> None:
        if announcement.id not in self._by_id:
            raise KeyError("announcement not found")
        self._by_id[announcement.id] = announcement

    def delete(self, announcement_id: UUID) -> bool:
        return self._by_id.pop(announcement_id, None) is not None

    def list_all(self, *, active_only: bool = False) -> list[Announcement]:
        items = sorted(self._by_id.values(), key=lambda a: a.created_at, reverse=True)
        if active_only:
            return [a for a in items if a.active]
        return items
