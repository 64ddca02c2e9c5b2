"""
Category service.

Categories are soft-deleted; every query filters on `deleted_at IS
NULL`.  Name clashes among live categories are a 409, whether caught
by the lookup or by the partial unique index on flush.
"""

import logging

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db_errors import raise_for_db_error
from app.models.category import Category

logger = logging.getLogger(__name__)


async def _ensure_name_available(name: str, db: AsyncSession, exclude_id: int | None = None) -> None:
    stmt = select(Category.id).where(
        func.lower(Category.name) == name.lower(),
        Category.deleted_at.is_(None),
    )
    if exclude_id is not None:
        stmt = stmt.where(Category.id != exclude_id)
    if (await db.execute(stmt)).first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Category '{name}' already exists",
        )


async def create_category(name: str, description: str | None, db: AsyncSession) -> Category:
    name = name.strip()
    await _ensure_name_available(name, db)
    category = Category(name=name, description=description)
    db.add(category)
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        raise_for_db_error(exc, "category_service.create_category")

    logger.info("Category created: %s (ID: %s)", category.name, category.id)
    return category


async def list_categories(db: AsyncSession, skip: int = 0, limit: int = 50) -> list[Category]:
    stmt = (
        select(Category)
        .where(Category.deleted_at.is_(None))
        .order_by(Category.name)
        .offset(skip)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_category(category_id: int, db: AsyncSession) -> Category:
    stmt = select(Category).where(Category.id == category_id, Category.deleted_at.is_(None))
    result = await db.execute(stmt)
    category = result.scalar_one_or_none()
    if category is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Category with ID {category_id} not found",
        )
    return category


async def update_category(
    category_id: int,
    db: AsyncSession,
    name: str | None = None,
    description: str | None = None,
) -> Category:
    category = await get_category(category_id, db)
    if name is not None:
        name = name.strip()
        await _ensure_name_available(name, db, exclude_id=category.id)
        category.name = name
    if description is not None:
        category.description = description

    try:
        await db.flush()
    except SQLAlchemyError as exc:
        raise_for_db_error(exc, "category_service.update_category")

    logger.info("Category updated: %s (ID: %s)", category.name, category.id)
    return category


async def delete_category(category_id: int, db: AsyncSession) -> None:
    category = await get_category(category_id, db)
    category.soft_delete()
    await db.flush()
    logger.info("Category soft deleted: %s (ID: %s)", category.name, category.id)
