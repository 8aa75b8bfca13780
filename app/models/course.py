from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal
from uuid import UUID, uuid4

CourseStatus = Literal["draft", "pending", "published", "pending_unpublish", "rejected"]
CourseLevel = Literal["beginner", "intermediate", "advanced"]

COURSE_STATUSES: tuple[str, ...] = (
    "draft",
    "pending",
    "published",
    "pending_unpublish",
    "rejected",
)
COURSE_LEVELS: tuple[str, ...] = ("beginner", "intermediate", "advanced")

# Statuses anyone (including anonymous callers) may see and enroll in.
PUBLIC_STATUSES: frozenset[str] = frozenset({"published", "pending_unpublish"})


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


@dataclass(frozen=True, slots=True)
class Lesson:
    id: str
    title: str
    video_url: str
    duration: int  # minutes
    order: int
    description: str = ""

    @staticmethod
    def new(
        *,
        title: str,
        video_url: str,
        duration: int,
        order: int,
        description: str = "",
    ) -> Lesson:
        return Lesson(
            id=uuid4().hex,
            title=title,
            video_url=video_url,
            duration=duration,
            order=order,
            description=description,
        )


@dataclass(frozen=True, slots=True)
class Section:
    id: str
    title: str
    lessons: tuple[Lesson, ...] = ()

    @staticmethod
    def new(*, title: str, lessons: tuple[Lesson, ...] = ()) -> Section:
        return Section(id=uuid4().hex, title=title, lessons=lessons)


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    instructor_id: UUID
    title: str
    slug: str
    short_description: str
    description: str
    price: float
    category: str
    level: str = "beginner"  # beginner|intermediate|advanced
    thumbnail: str = "/placeholder.svg"
    preview_video_url: str = ""
    sections: tuple[Section, ...] = ()
    status: str = "draft"  # draft|pending|published|pending_unpublish|rejected
    rejection_reason: str | None = None
    is_featured: bool = False
    students: int = 0
    rating: float = 0.0
    review_count: int = 0
    created_at: int = 0
    updated_at: int = 0

    @property
    def is_public(self) -> bool:
        return self.status in PUBLIC_STATUSES

    @staticmethod
    def new(
        *,
        instructor_id: UUID,
        title: str,
        short_description: str,
        description: str,
        price: float,
        category: str,
        level: str = "beginner",
        thumbnail: str = "/placeholder.svg",
        preview_video_url: str = "",
        sections: tuple[Section, ...] = (),
        created_at: int = 0,
    ) -> Course:
        return Course(
            id=uuid4(),
            instructor_id=instructor_id,
            title=title,
            slug=slugify(title),
            short_description=short_description,
            description=description,
            price=price,
            category=category,
            level=level,
            thumbnail=thumbnail,
            preview_video_url=preview_video_url,
            sections=sections,
            created_at=created_at,
            updated_at=created_at,
        )
