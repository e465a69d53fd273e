import csv
import io
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, func, or_, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.core.config import settings
from atelier.core.exceptions import (
    InsufficientStockError, LedgerValidationError, NotFoundError, PersistenceError,
)
from atelier.db.models import AuditLog, MovementType, Product, ProductCategory, StockMovement, User
from atelier.schemas.inventory import (
    InventoryCategory, InventoryItem, InventoryStats, StockAdjustment, StockMovementResponse, StockStatus,
)

logger = logging.getLogger(__name__)


def classify_stock(stock_quantity: int, low_stock_threshold: int) -> StockStatus:
    if stock_quantity == 0:
        return StockStatus.OUT_OF_STOCK
    if stock_quantity <= low_stock_threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def compute_new_quantity(current: int, movement_type: MovementType, quantity: int) -> int:
    """
    IN adds, OUT subtracts and ADJUSTMENT sets the counted stock level.

    OUT never takes stock below zero: it raises InsufficientStockError instead.
    Movement quantities are always positive, so a count that finds no units
    left is recorded as an OUT of the remaining stock, not as an ADJUSTMENT.
    """
    if movement_type == MovementType.IN:
        return current + quantity
    if movement_type == MovementType.OUT:
        if quantity > current:
            raise InsufficientStockError(available=current, requested=quantity)
        return current - quantity
    if movement_type == MovementType.ADJUSTMENT:
        return quantity
    raise LedgerValidationError(f"Unknown movement type: {movement_type}")


def to_inventory_item(product: Product, category: Optional[ProductCategory]) -> InventoryItem:
    return InventoryItem(
        id=product.id,
        name=product.name,
        sku=product.sku,
        image_url=product.image_url,
        stock_quantity=product.stock_quantity,
        low_stock_threshold=product.low_stock_threshold,
        price=product.price,
        status=classify_stock(product.stock_quantity, product.low_stock_threshold),
        category=InventoryCategory(id=category.id, name=category.name) if category else None,
        is_active=product.is_active,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def to_movement_response(movement: StockMovement, actor_name: Optional[str] = None) -> StockMovementResponse:
    return StockMovementResponse(
        id=movement.id,
        product_id=movement.product_id,
        type=movement.type,
        quantity=movement.quantity,
        reason=movement.reason,
        notes=movement.notes,
        previous_quantity=movement.previous_quantity,
        new_quantity=movement.new_quantity,
        created_at=movement.created_at,
        created_by=actor_name,
    )


async def apply_movement(
    db: AsyncSession,
    product_id: int,
    command: StockAdjustment,
    actor_id: Optional[int] = None,
) -> tuple[Product, StockMovement]:
    """
    Apply one stock movement and record it in the ledger.

    The product row is locked, then the new counter, the movement row and an
    audit row are committed together. Nothing is written when validation
    fails, the product is missing or stock is short.
    """
    if command.quantity <= 0:
        raise LedgerValidationError("Quantity must be greater than 0")
    reason = getattr(command.reason, "value", command.reason)
    if not reason or not str(reason).strip():
        raise LedgerValidationError("Reason is required")

    try:
        result = await db.execute(
            select(Product).where(Product.id == product_id).with_for_update()
        )
        product = result.scalar_one_or_none()
        if not product:
            raise NotFoundError("Product not found")

        previous_quantity = product.stock_quantity
        new_quantity = compute_new_quantity(previous_quantity, command.type, command.quantity)

        product.stock_quantity = new_quantity
        product.updated_at = datetime.utcnow()

        movement = StockMovement(
            product_id=product.id,
            type=command.type,
            quantity=command.quantity,
            reason=reason,
            notes=command.notes,
            previous_quantity=previous_quantity,
            new_quantity=new_quantity,
            created_by_id=actor_id,
            created_at=datetime.utcnow(),
        )
        db.add(movement)

        db.add(AuditLog(
            user_id=actor_id,
            action="STOCK_MOVEMENT",
            entity="product",
            entity_id=product.id,
            audit_data={
                "type": command.type.value,
                "quantity": command.quantity,
                "reason": reason,
                "previous_quantity": previous_quantity,
                "new_quantity": new_quantity,
            },
        ))
        await db.commit()
    except (NotFoundError, InsufficientStockError, LedgerValidationError):
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Stock movement failed for product={product_id}: {str(e)}")
        raise PersistenceError("Failed to adjust stock") from e

    await db.refresh(movement)
    logger.info(
        f"Stock movement applied: product={product_id}, type={command.type.value}, "
        f"quantity={command.quantity}, {previous_quantity} -> {new_quantity}"
    )
    return product, movement


async def get_inventory_item(db: AsyncSession, product_id: int) -> InventoryItem:
    result = await db.execute(
        select(Product, ProductCategory)
        .select_from(Product)
        .outerjoin(ProductCategory, Product.category_id == ProductCategory.id)
        .where(Product.id == product_id)
    )
    row = result.first()
    if not row:
        raise NotFoundError("Product not found")

    product, category = row
    return to_inventory_item(product, category)


async def get_inventory(
    db: AsyncSession,
    search: Optional[str] = None,
    category: Optional[str] = None,
    stock: Optional[StockStatus] = None,
) -> list[InventoryItem]:
    query = (
        select(Product, ProductCategory)
        .select_from(Product)
        .outerjoin(ProductCategory, Product.category_id == ProductCategory.id)
    )

    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(Product.name.ilike(pattern), Product.sku.ilike(pattern)))
    if category:
        query = query.where(ProductCategory.name == category)
    if stock == StockStatus.OUT_OF_STOCK:
        query = query.where(Product.stock_quantity == 0)
    elif stock == StockStatus.LOW_STOCK:
        query = query.where(and_(
            Product.stock_quantity > 0,
            Product.stock_quantity <= Product.low_stock_threshold,
        ))
    elif stock == StockStatus.IN_STOCK:
        query = query.where(Product.stock_quantity > Product.low_stock_threshold)

    result = await db.execute(query.order_by(Product.name))
    return [to_inventory_item(product, cat) for product, cat in result.all()]


def summarize_inventory(items: list[InventoryItem], recent_changes: int) -> InventoryStats:
    return InventoryStats(
        total_products=len(items),
        low_stock_items=sum(1 for item in items if item.status == StockStatus.LOW_STOCK),
        out_of_stock_items=sum(1 for item in items if item.status == StockStatus.OUT_OF_STOCK),
        total_value=sum((item.price * item.stock_quantity for item in items), Decimal("0")),
        recent_changes=recent_changes,
    )


async def get_inventory_stats(db: AsyncSession, now: Optional[datetime] = None) -> InventoryStats:
    """Aggregate over the whole catalog, independent of any listing filter."""
    now = now or datetime.utcnow()
    since = now - timedelta(days=settings.INVENTORY_RECENT_WINDOW_DAYS)

    items = await get_inventory(db)
    result = await db.execute(
        select(func.count(StockMovement.id)).where(StockMovement.created_at >= since)
    )
    recent_changes = result.scalar() or 0

    return summarize_inventory(items, recent_changes)


async def list_movements(
    db: AsyncSession,
    product_id: Optional[int] = None,
    limit: int = 50,
) -> list[StockMovementResponse]:
    query = (
        select(StockMovement, User.name)
        .select_from(StockMovement)
        .outerjoin(User, StockMovement.created_by_id == User.id)
    )
    if product_id is not None:
        query = query.where(StockMovement.product_id == product_id)

    result = await db.execute(
        query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).limit(limit)
    )
    return [to_movement_response(movement, actor_name) for movement, actor_name in result.all()]


EXPORT_COLUMNS = ["id", "name", "sku", "category", "stock_quantity", "low_stock_threshold", "status", "price"]


def export_inventory_csv(items: list[InventoryItem]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)
    for item in items:
        writer.writerow([
            item.id,
            item.name,
            item.sku or "",
            item.category.name if item.category else "",
            item.stock_quantity,
            item.low_stock_threshold,
            item.status.value,
            f"{item.price:.2f}",
        ])
    return buffer.getvalue()
