"""Categories and their consistency with courses.

A course stores its category as a plain name, not a reference.  Renaming
a category therefore rewrites every course holding the old name, in the
same unit of work as the rename itself.  ``course_count`` on a category is
an advisory display counter; ``list_categories`` recomputes it from the
courses every time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from uuid import UUID

from app.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.models.category import Category
from app.models.course import COURSE_STATUSES, PUBLIC_STATUSES, slugify
from app.models.principal import Principal
from app.repos.memory import UniqueViolation
from app.repos.unit_of_work import UnitOfWork
from app.services import authz

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 500


@dataclass(frozen=True, slots=True)
class CategoryCount:
    category: Category
    course_count: int


def _require_admin(actor: Principal) -> None:
    if not authz.can_manage_catalog(actor):
        logger.warning("Category change denied for user=%s", actor.user_id)
        raise ForbiddenError("Only an admin can manage categories")


def _clean(name: str, description: str) -> tuple[str, str]:
    name = name.strip()
    description = description.strip()
    if not name:
        raise ValidationError("Category name is required")
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters"
        )
    return name, description


def parse_status_filter(raw: str | None) -> frozenset[str] | None:
    """``public`` (default), ``all`` (None = no filter) or a comma list."""
    if raw is None or raw == "" or raw == "public":
        return PUBLIC_STATUSES
    if raw == "all":
        return None
    wanted = frozenset(s.strip() for s in raw.split(",") if s.strip())
    unknown = wanted - set(COURSE_STATUSES)
    if unknown:
        raise ValidationError(f"Unknown course status: {', '.join(sorted(unknown))}")
    return wanted


def create_category(
    uow: UnitOfWork, actor: Principal, name: str, description: str = ""
) -> Category:
    _require_admin(actor)
    name, description = _clean(name, description)

    with uow.transaction():
        if uow.categories.get_by_name(name) is not None:
            raise ConflictError(f"Category '{name}' already exists")
        category = Category.new(name=name, description=description)
        category = replace(category, course_count=uow.courses.count_by_category(name))
        try:
            uow.categories.add(category)
        except UniqueViolation as exc:
            raise ConflictError(f"Category '{name}' already exists") from exc

    logger.info("Created category %r", name)
    return category


def update_category(
    uow: UnitOfWork,
    actor: Principal,
    category_id: UUID,
    name: str | None = None,
    description: str | None = None,
) -> Category:
    """Rename and/or re-describe a category; renames reach every course."""
    _require_admin(actor)

    with uow.transaction():
        category = uow.categories.get(category_id)
        if category is None:
            raise NotFoundError("Category", category_id)
        new_name, new_description = _clean(
            category.name if name is None else name,
            category.description if description is None else description,
        )

        renamed = new_name != category.name
        if renamed:
            clash = uow.categories.get_by_name(new_name)
            if clash is not None and clash.id != category.id:
                raise ConflictError(f"Category '{new_name}' already exists")

        updated = replace(
            category,
            name=new_name,
            slug=slugify(new_name),
            description=new_description,
        )
        try:
            uow.categories.save(updated)
        except UniqueViolation as exc:
            raise ConflictError(f"Category '{new_name}' already exists") from exc

        moved = 0
        if renamed:
            moved = uow.courses.rename_category(category.name, new_name)

    if renamed:
        logger.info(
            "Renamed category %r -> %r (%d courses updated)", category.name, new_name, moved
        )
    return updated


def delete_category(uow: UnitOfWork, actor: Principal, category_id: UUID) -> None:
    _require_admin(actor)

    with uow.transaction():
        category = uow.categories.get(category_id)
        if category is None:
            raise NotFoundError("Category", category_id)
        in_use = uow.courses.count_by_category(category.name)
        if in_use > 0:
            raise ConflictError(
                f"Category '{category.name}' is used by {in_use} course(s) and cannot be deleted"
            )
        uow.categories.delete(category_id)

    logger.info("Deleted category %r", category.name)


def list_categories(uow: UnitOfWork, status: str | None = None) -> list[CategoryCount]:
    statuses = parse_status_filter(status)
    with uow.reading():
        return [
            CategoryCount(c, uow.courses.count_by_category(c.name, statuses))
            for c in uow.categories.list_all()
        ]
