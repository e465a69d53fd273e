import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.core.exceptions import NotFoundError
from atelier.db.models import AuditLog, Order, OrderItem, OrderStatus, Product
from atelier.schemas.category import BulkResult
from atelier.schemas.order import OrderItemResponse, OrderResponse

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, set())


async def _to_response(db: AsyncSession, order: Order) -> OrderResponse:
    items_result = await db.execute(
        select(OrderItem, Product)
        .select_from(OrderItem)
        .join(Product, OrderItem.product_id == Product.id)
        .where(OrderItem.order_id == order.id)
    )
    items = [
        OrderItemResponse(
            product_id=item.product_id,
            product_name=product.name,
            quantity=item.quantity,
            price_snapshot=item.price_snapshot,
        )
        for item, product in items_result.all()
    ]

    return OrderResponse(
        id=order.id,
        order_number=order.order_number,
        customer_email=order.customer_email,
        customer_name=order.customer_name,
        total=order.total,
        status=order.status,
        created_at=order.created_at,
        items=items,
    )


async def get_orders(
    db: AsyncSession,
    page: int = 1,
    limit: int = 10,
    status: Optional[OrderStatus] = None,
    search: Optional[str] = None,
) -> tuple[list[OrderResponse], int]:
    offset = (page - 1) * limit

    filters = []
    if status:
        filters.append(Order.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        filters.append(or_(
            Order.order_number.ilike(pattern),
            Order.customer_email.ilike(pattern),
            Order.customer_name.ilike(pattern),
        ))

    result = await db.execute(
        select(Order).where(*filters).order_by(Order.created_at.desc()).offset(offset).limit(limit)
    )
    orders = result.scalars().all()

    count_result = await db.execute(select(func.count(Order.id)).where(*filters))
    total_count = count_result.scalar()

    return [await _to_response(db, order) for order in orders], total_count


async def get_status_counts(db: AsyncSession) -> dict[str, int]:
    result = await db.execute(select(Order.status, func.count(Order.id)).group_by(Order.status))
    counts = {status.value: 0 for status in OrderStatus}
    for status, count in result.all():
        counts[status.value] = count
    return counts


async def update_order_status(
    db: AsyncSession,
    order_id: int,
    new_status: OrderStatus,
    actor_id: Optional[int] = None,
) -> OrderResponse:
    result = await db.execute(select(Order).where(Order.id == order_id))
    order = result.scalar_one_or_none()
    if not order:
        raise NotFoundError("Order not found")

    previous = order.status
    if not can_transition(previous, new_status):
        raise ValueError(f"Cannot change order status from {previous.value} to {new_status.value}")

    order.status = new_status
    order.updated_at = datetime.utcnow()
    db.add(AuditLog(
        user_id=actor_id,
        action="ORDER_STATUS_UPDATE",
        entity="order",
        entity_id=order.id,
        audit_data={"from": previous.value, "to": new_status.value},
    ))
    await db.commit()
    logger.info(f"Order {order.order_number} status: {previous.value} -> {new_status.value}")

    return await _to_response(db, order)


async def bulk_update_order_status(
    db: AsyncSession,
    order_ids: list[int],
    new_status: OrderStatus,
    actor_id: Optional[int] = None,
) -> BulkResult:
    """Orders that are missing or cannot move to ``new_status`` are skipped."""
    updated = []
    skipped = []

    for order_id in order_ids:
        result = await db.execute(select(Order).where(Order.id == order_id))
        order = result.scalar_one_or_none()
        if not order or not can_transition(order.status, new_status):
            skipped.append(order_id)
            continue

        order.status = new_status
        order.updated_at = datetime.utcnow()
        updated.append(order_id)

    db.add(AuditLog(
        user_id=actor_id,
        action="ORDER_BULK_STATUS_UPDATE",
        entity="order",
        audit_data={"status": new_status.value, "updated": updated, "skipped": skipped},
    ))
    await db.commit()
    logger.info(f"Bulk order status {new_status.value}: updated={updated}, skipped={skipped}")

    return BulkResult(updated=updated, skipped=skipped)
