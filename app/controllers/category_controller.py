"""
Category controller — catalog categories.

Every route declares its permission through `require_access(...)`;
the permission sync discovers these slugs at startup.
"""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.rbac.dependencies import require_access
from app.schemas import CategoryOut, CreateCategoryRequest, UpdateCategoryRequest
from app.services import category_service

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.post(
    "",
    response_model=CategoryOut,
    status_code=201,
    dependencies=[Depends(require_access("categories.create"))],
)
async def create_category(body: CreateCategoryRequest, db: AsyncSession = Depends(get_db)):
    category = await category_service.create_category(body.name, body.description, db)
    return CategoryOut.model_validate(category)


@router.get(
    "",
    response_model=list[CategoryOut],
    dependencies=[Depends(require_access("categories.read"))],
)
async def list_categories(
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    categories = await category_service.list_categories(db, skip, limit)
    return [CategoryOut.model_validate(c) for c in categories]


@router.get(
    "/{category_id}",
    response_model=CategoryOut,
    dependencies=[Depends(require_access("categories.read"))],
)
async def get_category(category_id: int, db: AsyncSession = Depends(get_db)):
    category = await category_service.get_category(category_id, db)
    return CategoryOut.model_validate(category)


@router.patch(
    "/{category_id}",
    response_model=CategoryOut,
    dependencies=[Depends(require_access("categories.update"))],
)
async def update_category(
    category_id: int,
    body: UpdateCategoryRequest,
    db: AsyncSession = Depends(get_db),
):
    category = await category_service.update_category(
        category_id,
        db,
        name=body.name,
        description=body.description,
    )
    return CategoryOut.model_validate(category)


@router.delete(
    "/{category_id}",
    status_code=204,
    dependencies=[Depends(require_access("categories.delete"))],
)
async def delete_category(category_id: int, db: AsyncSession = Depends(get_db)):
    await category_service.delete_category(category_id, db)
    return Response(status_code=204)
