"""
Product service.

Products must point at a live category; an unknown or soft-deleted
`category_id` is a 400.  Reads hide soft-deleted products, and a
product stays readable after its category is soft-deleted.
"""

import logging
from collections.abc import Sequence

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db_errors import raise_for_db_error
from app.models.category import Category
from app.models.product import Product

logger = logging.getLogger(__name__)


async def _live_category(category_id: int, db: AsyncSession) -> Category:
    stmt = select(Category).where(Category.id == category_id, Category.deleted_at.is_(None))
    category = (await db.execute(stmt)).scalar_one_or_none()
    if category is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Category with ID {category_id} does not exist",
        )
    return category


async def create_product(
    name: str,
    description: str,
    category_id: int,
    db: AsyncSession,
    tags: Sequence[str] | None = None,
) -> Product:
    category = await _live_category(category_id, db)
    product = Product(
        name=name.strip(),
        description=description,
        tags=list(tags) if tags is not None else None,
        category=category,
    )
    db.add(product)
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        raise_for_db_error(exc, "product_service.create_product")

    logger.info("Product created: %s (ID: %s)", product.name, product.id)
    return product


async def list_products(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 50,
    category_id: int | None = None,
) -> list[Product]:
    stmt = select(Product).where(Product.deleted_at.is_(None))
    if category_id is not None:
        stmt = stmt.where(Product.category_id == category_id)
    stmt = stmt.order_by(Product.id).offset(skip).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_product(product_id: int, db: AsyncSession) -> Product:
    stmt = select(Product).where(Product.id == product_id, Product.deleted_at.is_(None))
    product = (await db.execute(stmt)).scalar_one_or_none()
    if product is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Product with ID {product_id} not found",
        )
    return product


async def update_product(
    product_id: int,
    db: AsyncSession,
    name: str | None = None,
    description: str | None = None,
    tags: Sequence[str] | None = None,
    category_id: int | None = None,
) -> Product:
    product = await get_product(product_id, db)

    if name is not None:
        product.name = name.strip()
    if description is not None:
        product.description = description
    if tags is not None:
        product.tags = list(tags)
    if category_id is not None and category_id != product.category_id:
        product.category = await _live_category(category_id, db)

    try:
        await db.flush()
    except SQLAlchemyError as exc:
        raise_for_db_error(exc, "product_service.update_product")

    logger.info("Product updated: %s (ID: %s)", product.name, product.id)
    return product


async def delete_product(product_id: int, db: AsyncSession) -> None:
    product = await get_product(product_id, db)
    product.soft_delete()
    await db.flush()
    logger.info("Product soft deleted: %s (ID: %s)", product.name, product.id)
