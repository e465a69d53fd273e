from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from atelier.api.dependencies import get_current_admin
from atelier.core.exceptions import NotFoundError
from atelier.db.models import OrderStatus, User
from atelier.db.session import get_db
from atelier.schemas.category import BulkResult
from atelier.schemas.order import OrderBulkStatusUpdate, OrderListResponse, OrderResponse, OrderStatusUpdate
from atelier.services.order import bulk_update_order_status, get_orders, get_status_counts, update_order_status


router = APIRouter(prefix="/api/v1/admin/orders", tags=["orders"])


@router.get("", response_model=OrderListResponse)
async def list_orders(
    page: int = 1,
    limit: int = 10,
    status_filter: Optional[OrderStatus] = Query(default=None, alias="status"),
    search: Optional[str] = None,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    if page < 1:
        page = 1
    if limit < 1 or limit > 100:
        limit = 10

    orders, total_count = await get_orders(db, page, limit, status=status_filter, search=search)
    total_pages = (total_count + limit - 1) // limit

    return OrderListResponse(
        items=orders,
        total=total_count,
        page=page,
        limit=limit,
        total_pages=total_pages,
        status_counts=await get_status_counts(db),
    )


@router.patch("/bulk", response_model=BulkResult)
async def bulk_status(
    data: OrderBulkStatusUpdate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    return await bulk_update_order_status(db, data.order_ids, data.status, actor_id=admin.id)


@router.patch("/{order_id}", response_model=OrderResponse)
async def set_status(
    order_id: int,
    data: OrderStatusUpdate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    try:
        return await update_order_status(db, order_id, data.status, actor_id=admin.id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
