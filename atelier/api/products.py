from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from atelier.core.exceptions import NotFoundError
from atelier.db.session import get_db
from atelier.schemas.category import CategoryResponse
from atelier.schemas.product import ProductResponse
from atelier.services.category import list_categories
from atelier.services.product import get_related_products, get_shop_product, list_shop_products

router = APIRouter(prefix="/api/shop", tags=["shop"])


@router.get("/products", response_model=list[ProductResponse])
async def list_products(
    featured: bool = False,
    category_id: Optional[int] = None,
    limit: Optional[int] = None,
    db: AsyncSession = Depends(get_db)
):
    if limit is not None and (limit < 1 or limit > 100):
        limit = 24
    return await list_shop_products(db, featured=featured, category_id=category_id, limit=limit)


@router.get("/products/{slug}", response_model=ProductResponse)
async def get_product(slug: str, db: AsyncSession = Depends(get_db)):
    try:
        return await get_shop_product(db, slug)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/products/{slug}/related", response_model=list[ProductResponse])
async def related_products(slug: str, limit: int = 4, db: AsyncSession = Depends(get_db)):
    try:
        return await get_related_products(db, slug, limit=max(1, min(limit, 12)))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/categories", response_model=list[CategoryResponse])
async def get_categories(db: AsyncSession = Depends(get_db)):
    return await list_categories(db, active_only=True)
