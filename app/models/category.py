from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

from app.models.course import slugify


@dataclass(frozen=True, slots=True)
class Category:
    id: UUID
    name: str
    slug: str
    description: str = ""
    course_count: int = 0  # advisory; authoritative count comes from courses

    @staticmethod
    def new(*, name: str, description: str = "") -> Category:
        return Category(id=uuid4(), name=name, slug=slugify(name), description=description)
