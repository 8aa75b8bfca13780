from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.models.category import Category
from app.models.course import Course, Lesson, Section
from app.models.principal import Principal
from app.models.user import User
from app.repos.unit_of_work import unit_of_work
from app.services import token_service
from app.services.cache import cache_service

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_store() -> None:
    """Drop every user, course, enrollment, ... between tests."""
    unit_of_work.reset()


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear the catalog cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(user_id: str | None = None, roles: list[str] | None = None) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=user_id or str(uuid4()), roles=roles)


def auth(token: str | None) -> dict[str, str]:
    if token is None:
        return {}
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def create_test_user(role: str = "student", email: str | None = None) -> User:
    """Persist a user in the in-memory store (password hash is a placeholder)."""
    user = User.new(
        email=email or f"{role}-{uuid4().hex[:8]}@example.com",
        password_hash="x",
        name=f"Test {role.title()}",
        role=role,
    )
    with unit_of_work.transaction():
        unit_of_work.users.add(user)
    return user


def principal_for(user: User) -> Principal:
    return Principal(user_id=str(user.id), roles=frozenset({user.role}))


def token_for(user: User) -> str:
    return mint_token(user_id=str(user.id), roles=[user.role])


def create_test_category(name: str = "Development") -> Category:
    category = Category.new(name=name)
    with unit_of_work.transaction():
        unit_of_work.categories.add(category)
    return category


def build_sections(lesson_count: int = 4) -> tuple[Section, ...]:
    """One section with ``lesson_count`` lessons whose ids are l1, l2, ..."""
    lessons = tuple(
        Lesson(
            id=f"l{i}",
            title=f"Lesson {i}",
            video_url=f"https://videos.example.com/{i}.mp4",
            duration=10,
            order=i,
        )
        for i in range(1, lesson_count + 1)
    )
    return (Section(id="s1", title="Basics", lessons=lessons),)


def create_test_course(
    instructor: User,
    *,
    status: str = "published",
    category: str = "Development",
    lesson_count: int = 4,
    price: float = 49.99,
    title: str = "Intro to Python",
) -> Course:
    """Persist a course directly in the given status, bypassing moderation."""
    course = Course.new(
        instructor_id=instructor.id,
        title=title,
        short_description="Learn the basics",
        description="A practical first course.",
        price=price,
        category=category,
        sections=build_sections(lesson_count),
    )
    course = replace(course, status=status)
    with unit_of_work.transaction():
        unit_of_work.courses.add(course)
        unit_of_work.categories.adjust_count(category, +1)
    return course


@pytest.fixture
def admin() -> User:
    return create_test_user("admin")


@pytest.fixture
def instructor() -> User:
    return create_test_user("instructor")


@pytest.fixture
def student() -> User:
    return create_test_user("student")


@pytest.fixture
def category() -> Category:
    return create_test_category()


@pytest.fixture
def course(instructor: User, category: Category) -> Course:
    return create_test_course(instructor, category=category.name)
