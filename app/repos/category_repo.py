from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.models.category import Category
from app.repos.memory import SnapshotMixin, UniqueViolation


class CategoryRepo(Protocol):
    def get(self, category_id: UUID) -> Category | None: ...
    def get_by_name(self, name: str) -> Category | None: ...
    def add(self, category: Category) -> None: ...
    def save(self, category: Category) -> None: ...
    def delete(self, category_id: UUID) -> bool: ...
    def list_all(self) -> list[Category]: ...
    def adjust_count(self, name: str, delta: int) -> None: ...


class InMemoryCategoryRepo(SnapshotMixin):
    """Categories with a case-insensitive unique name index."""

    _state_attrs = ("_by_id", "_by_name")

    def __init__(self) -> None:
        self._by_id: dict[UUID, Category] = {}
        self._by_name: dict[str, UUID] = {}

    @staticmethod
    def _key(name: str) -> str:
        return name.strip().casefold()

    def get(self, category_id: UUID) -> Category | None:
        return self._by_id.get(category_id)

    def get_by_name(self, name: str) -> Category | None:
        category_id = self._by_name.get(self._key(name))
        if category_id is None:
            return None
        return self._by_id.get(category_id)

    def add(self, category: Category) -> None:
        key = self._key(category.name)
        if key in self._by_name:
            raise UniqueViolation("category name already exists")
        self._by_id[category.id] = category
        self._by_name[key] = category.id

    def save(self, category: Category) -> None:
        existing = self._by_id.get(category.id)
        if existing is None:
            raise KeyError("category not found")
        new_key = self._key(category.name)
        owner = self._by_name.get(new_key)
        if owner is not None and owner != category.id:
            raise UniqueViolation("category name already exists")
        self._by_name.pop(self._key(existing.name), None)
        self._by_name[new_key] = category.id
        self._by_id[category.id] = category

    def delete(self, category_id: UUID) -> bool:
        removed = self._by_id.pop(category_id, None)
        if removed is None:
            return False
        self._by_name.pop(self._key(removed.name), None)
        return True

    def list_all(self) -> list[Category]:
        return sorted(self._by_id.values(), key=lambda c: c.name.casefold())

    def adjust_count(self, name: str, delta: int) -> None:
        # Advisory counter: unknown names are ignored
        category = self.get_by_name(name)
        if category is None:
            return
        self._by_id[category.id] = replace(
            category, course_count=max(0, category.course_count + delta)
        )
