from __future__ import annotations

import pytest

from app.core.errors import ConflictError, ForbiddenError, ValidationError
from app.models.course import PUBLIC_STATUSES
from app.repos.unit_of_work import unit_of_work
from app.services import category_service
from tests.conftest import create_test_course, principal_for


def test_create_category(admin) -> None:
    category = category_service.create_category(
        unit_of_work, principal_for(admin), "  Data Science ", "Numbers"
    )
    assert category.name == "Data Science"
    assert category.slug == "data-science"


def test_duplicate_name_ignores_case(admin, category) -> None:
    with pytest.raises(ConflictError):
        category_service.create_category(unit_of_work, principal_for(admin), "development")


def test_only_admin_manages_categories(instructor) -> None:
    with pytest.raises(ForbiddenError):
        category_service.create_category(unit_of_work, principal_for(instructor), "Design")


def test_rename_rewrites_courses(admin, instructor, category) -> None:
    first = create_test_course(instructor, category=category.name)
    second = create_test_course(instructor, category=category.name, status="draft")

    renamed = category_service.update_category(
        unit_of_work, principal_for(admin), category.id, name="Software"
    )
    assert renamed.name == "Software"
    assert unit_of_work.courses.get(first.id).category == "Software"
    assert unit_of_work.courses.get(second.id).category == "Software"
    assert unit_of_work.courses.count_by_category("Development") == 0


def test_rename_into_existing_name_conflicts(admin, instructor, category) -> None:
    other = category_service.create_category(unit_of_work, principal_for(admin), "Design")
    course = create_test_course(instructor, category=category.name)

    with pytest.raises(ConflictError):
        category_service.update_category(
            unit_of_work, principal_for(admin), category.id, name="DESIGN"
        )
    # Nothing moved
    assert unit_of_work.courses.get(course.id).category == "Development"
    assert unit_of_work.categories.get(other.id).name == "Design"


def test_case_only_rename(admin, instructor, category) -> None:
    course = create_test_course(instructor, category=category.name)
    category_service.update_category(
        unit_of_work, principal_for(admin), category.id, name="DEVELOPMENT"
    )
    assert unit_of_work.courses.get(course.id).category == "DEVELOPMENT"


def test_description_only_update(admin, category) -> None:
    updated = category_service.update_category(
        unit_of_work, principal_for(admin), category.id, description="Code"
    )
    assert updated.name == "Development"
    assert updated.description == "Code"


def test_delete_in_use_category_conflicts(admin, instructor, category) -> None:
    create_test_course(instructor, category=category.name, status="draft")
    with pytest.raises(ConflictError, match="used by 1 course"):
        category_service.delete_category(unit_of_work, principal_for(admin), category.id)
    assert unit_of_work.categories.get(category.id) is not None


def test_delete_unused_category(admin, category) -> None:
    category_service.delete_category(unit_of_work, principal_for(admin), category.id)
    assert unit_of_work.categories.get(category.id) is None


def test_counts_follow_status_filter(instructor, category) -> None:
    create_test_course(instructor, category=category.name, status="published")
    create_test_course(instructor, category=category.name, status="draft")
    create_test_course(instructor, category=category.name, status="pending")

    (public,) = category_service.list_categories(unit_of_work)
    (everything,) = category_service.list_categories(unit_of_work, "all")
    (unfinished,) = category_service.list_categories(unit_of_work, "draft,pending")
    assert public.course_count == 1
    assert everything.course_count == 3
    assert unfinished.course_count == 2


def test_parse_status_filter() -> None:
    assert category_service.parse_status_filter(None) == PUBLIC_STATUSES
    assert category_service.parse_status_filter("all") is None
    assert category_service.parse_status_filter("draft, rejected") == {"draft", "rejected"}
    with pytest.raises(ValidationError):
        category_service.parse_status_filter("archived")
