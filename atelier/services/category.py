import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.core.exceptions import NotFoundError, PersistenceError
from atelier.db.models import AuditLog, Product, ProductCategory
from atelier.schemas.category import BulkResult, CategoryCreate, CategoryResponse, CategoryUpdate

logger = logging.getLogger(__name__)


def _to_response(category: ProductCategory, product_count: int) -> CategoryResponse:
    return CategoryResponse(
        id=category.id,
        name=category.name,
        description=category.description,
        image_url=category.image_url,
        is_active=category.is_active,
        product_count=product_count or 0,
        created_at=category.created_at,
        updated_at=category.updated_at,
    )


async def _count_products(db: AsyncSession, category_id: int) -> int:
    result = await db.execute(
        select(func.count(Product.id)).where(Product.category_id == category_id)
    )
    return result.scalar() or 0


async def _get_category(db: AsyncSession, category_id: int) -> ProductCategory:
    result = await db.execute(select(ProductCategory).where(ProductCategory.id == category_id))
    category = result.scalar_one_or_none()
    if not category:
        raise NotFoundError("Category not found")
    return category


async def _name_taken(db: AsyncSession, name: str, exclude_id: Optional[int] = None) -> bool:
    query = select(ProductCategory.id).where(func.lower(ProductCategory.name) == name.lower())
    if exclude_id is not None:
        query = query.where(ProductCategory.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


async def list_categories(
    db: AsyncSession,
    active_only: bool = True,
    search: Optional[str] = None,
) -> list[CategoryResponse]:
    query = (
        select(ProductCategory, func.count(Product.id))
        .select_from(ProductCategory)
        .outerjoin(Product, Product.category_id == ProductCategory.id)
        .group_by(ProductCategory.id)
        .order_by(ProductCategory.name)
    )
    if active_only:
        query = query.where(ProductCategory.is_active.is_(True))
    if search:
        query = query.where(ProductCategory.name.ilike(f"%{search.strip()}%"))

    result = await db.execute(query)
    return [_to_response(category, count) for category, count in result.all()]


async def create_category(db: AsyncSession, data: CategoryCreate, actor_id: Optional[int] = None) -> CategoryResponse:
    if await _name_taken(db, data.name):
        raise ValueError("Category already exists")

    category = ProductCategory(
        name=data.name,
        description=data.description,
        image_url=str(data.image_url) if data.image_url else None,
        is_active=data.is_active,
    )
    db.add(category)
    await db.flush()

    db.add(AuditLog(
        user_id=actor_id,
        action="CATEGORY_CREATE",
        entity="category",
        entity_id=category.id,
        audit_data={"name": data.name},
    ))
    await db.commit()
    await db.refresh(category)
    logger.info(f"Category created: id={category.id}, name={category.name}")

    return _to_response(category, 0)


async def update_category(
    db: AsyncSession,
    category_id: int,
    data: CategoryUpdate,
    actor_id: Optional[int] = None,
) -> CategoryResponse:
    category = await _get_category(db, category_id)
    update_data = data.model_dump(exclude_unset=True)

    if update_data.get("name") and await _name_taken(db, update_data["name"], exclude_id=category_id):
        raise ValueError("Category already exists")
    if update_data.get("image_url") is not None:
        update_data["image_url"] = str(update_data["image_url"])

    for field, value in update_data.items():
        setattr(category, field, value)
    category.updated_at = datetime.utcnow()

    db.add(AuditLog(
        user_id=actor_id,
        action="CATEGORY_UPDATE",
        entity="category",
        entity_id=category_id,
        audit_data=update_data,
    ))
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Category update failed for id={category_id}: {str(e)}")
        raise PersistenceError("Failed to update category") from e
    await db.refresh(category)

    return _to_response(category, await _count_products(db, category_id))


async def delete_category(db: AsyncSession, category_id: int, actor_id: Optional[int] = None) -> None:
    category = await _get_category(db, category_id)

    if await _count_products(db, category_id) > 0:
        raise ValueError("Cannot delete a category with associated products")

    await db.delete(category)
    db.add(AuditLog(
        user_id=actor_id,
        action="CATEGORY_DELETE",
        entity="category",
        entity_id=category_id,
        audit_data={"name": category.name},
    ))
    await db.commit()
    logger.info(f"Category deleted: id={category_id}")


async def bulk_update_categories(
    db: AsyncSession,
    category_ids: list[int],
    action: str,
    actor_id: Optional[int] = None,
) -> BulkResult:
    """Apply one action to several categories; missing ids and non-empty deletes are skipped."""
    updated = []
    skipped = []

    for category_id in category_ids:
        result = await db.execute(select(ProductCategory).where(ProductCategory.id == category_id))
        category = result.scalar_one_or_none()
        if not category:
            skipped.append(category_id)
            continue

        if action == "delete":
            if await _count_products(db, category_id) > 0:
                skipped.append(category_id)
                continue
            await db.delete(category)
        else:
            category.is_active = action == "activate"
            category.updated_at = datetime.utcnow()
        updated.append(category_id)

    db.add(AuditLog(
        user_id=actor_id,
        action=f"CATEGORY_BULK_{action.upper()}",
        entity="category",
        audit_data={"updated": updated, "skipped": skipped},
    ))
    await db.commit()
    logger.info(f"Bulk category {action}: updated={updated}, skipped={skipped}")

    return BulkResult(updated=updated, skipped=skipped)
