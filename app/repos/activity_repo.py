from __future__ import annotations

from typing import Protocol

from app.models.activity import Activity
from app.repos.memory import SnapshotMixin


class ActivityRepo(Protocol):
    def append(self, activity: Activity) -> None: ...
    def list_recent(self, limit: int = 20) -> list[Activity]: ...
    def list_all(self) -> list[Activity]: ...


class InMemoryActivityRepo(SnapshotMixin):
    """Append-only log. There is no update or delete."""

    _state_attrs = ("_log",)

    def __init__(self) -> None:
        self._log: list[Activity] = []

    def append(self, activity: Activity) -> None:
        self._log.append(activity)

    def list_recent(self, limit: int = 20) -> list[Activity]:
        if limit <= 0:
            return []
        return list(reversed(self._log[-limit:]))

    def list_all(self) -> list[Activity]:
        return list(self._log)
