"""
Product controller — catalog products.

Same shape as the category routes; each handler declares its
`products.*` permission through `require_access(...)`.
"""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.rbac.dependencies import require_access
from app.schemas import CreateProductRequest, ProductOut, UpdateProductRequest
from app.services import product_service

router = APIRouter(prefix="/products", tags=["Products"])


@router.post(
    "",
    response_model=ProductOut,
    status_code=201,
    dependencies=[Depends(require_access("products.create"))],
)
async def create_product(body: CreateProductRequest, db: AsyncSession = Depends(get_db)):
    product = await product_service.create_product(
        body.name,
        body.description,
        body.category_id,
        db,
        tags=body.tags,
    )
    return ProductOut.model_validate(product)


@router.get(
    "",
    response_model=list[ProductOut],
    dependencies=[Depends(require_access("products.read"))],
)
async def list_products(
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    category_id: int | None = Query(None, gt=0),
):
    products = await product_service.list_products(db, skip, limit, category_id=category_id)
    return [ProductOut.model_validate(p) for p in products]


@router.get(
    "/{product_id}",
    response_model=ProductOut,
    dependencies=[Depends(require_access("products.read"))],
)
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    product = await product_service.get_product(product_id, db)
    return ProductOut.model_validate(product)


@router.patch(
    "/{product_id}",
    response_model=ProductOut,
    dependencies=[Depends(require_access("products.update"))],
)
async def update_product(
    product_id: int,
    body: UpdateProductRequest,
    db: AsyncSession = Depends(get_db),
):
    product = await product_service.update_product(
        product_id,
        db,
        name=body.name,
        description=body.description,
        tags=body.tags,
        category_id=body.category_id,
    )
    return ProductOut.model_validate(product)


@router.delete(
    "/{product_id}",
    status_code=204,
    dependencies=[Depends(require_access("products.delete"))],
)
async def delete_product(product_id: int, db: AsyncSession = Depends(get_db)):
    await product_service.delete_product(product_id, db)
    return Response(status_code=204)
