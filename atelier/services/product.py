import logging
from typing import Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.core.exceptions import NotFoundError
from atelier.db.models import Product, ProductCategory
from atelier.schemas.cart import ProductSnapshot
from atelier.schemas.product import ProductResponse

logger = logging.getLogger(__name__)


def _to_response(product: Product, category: Optional[ProductCategory]) -> ProductResponse:
    return ProductResponse(
        id=product.id,
        name=product.name,
        slug=product.slug,
        description=product.description,
        price=product.price,
        image_url=product.image_url,
        medium=product.medium,
        size=product.size,
        stock_quantity=product.stock_quantity,
        in_stock=product.stock_quantity > 0,
        featured=product.featured,
        category_id=product.category_id,
        category_name=category.name if category else None,
        created_at=product.created_at,
    )


def _catalog_query():
    return (
        select(Product, ProductCategory)
        .select_from(Product)
        .outerjoin(ProductCategory, Product.category_id == ProductCategory.id)
    )


async def list_shop_products(
    db: AsyncSession,
    featured: bool = False,
    category_id: Optional[int] = None,
    limit: Optional[int] = None,
) -> list[ProductResponse]:
    """Active products that can still be bought, newest first."""
    query = _catalog_query().where(and_(Product.is_active.is_(True), Product.stock_quantity > 0))
    if featured:
        query = query.where(Product.featured.is_(True))
    if category_id is not None:
        query = query.where(Product.category_id == category_id)

    query = query.order_by(Product.created_at.desc(), Product.id.desc())
    if limit:
        query = query.limit(limit)

    result = await db.execute(query)
    return [_to_response(product, category) for product, category in result.all()]


async def get_shop_product(db: AsyncSession, slug: str) -> ProductResponse:
    result = await db.execute(
        _catalog_query().where(and_(Product.slug == slug, Product.is_active.is_(True)))
    )
    row = result.first()
    if not row:
        raise NotFoundError("Product not found")

    product, category = row
    return _to_response(product, category)


async def get_related_products(db: AsyncSession, slug: str, limit: int = 4) -> list[ProductResponse]:
    product = await get_shop_product(db, slug)
    if product.category_id is None:
        return []

    result = await db.execute(
        _catalog_query()
        .where(
            and_(
                Product.category_id == product.category_id,
                Product.id != product.id,
                Product.is_active.is_(True),
                Product.stock_quantity > 0,
            )
        )
        .order_by(Product.created_at.desc())
        .limit(limit)
    )
    return [_to_response(p, category) for p, category in result.all()]


async def get_product_snapshot(db: AsyncSession, product_id: int) -> ProductSnapshot:
    """Shape a purchasable product the way the cart expects it."""
    result = await db.execute(
        select(Product).where(and_(Product.id == product_id, Product.is_active.is_(True)))
    )
    product = result.scalar_one_or_none()
    if not product:
        raise NotFoundError("Product not found or not available")

    return ProductSnapshot(
        id=str(product.id),
        name=product.name,
        price=product.price,
        image_url=product.image_url,
        stock_quantity=product.stock_quantity,
        medium=product.medium or "",
        size=product.size or "",
    )
