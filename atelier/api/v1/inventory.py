import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.api.dependencies import get_current_admin
from atelier.core.exceptions import InsufficientStockError, NotFoundError, PersistenceError
from atelier.core.notifications import Notifier
from atelier.db.models import User
from atelier.db.session import get_db
from atelier.schemas.inventory import (
    InventoryListResponse, StockAdjustment, StockAdjustmentResponse, StockMovementResponse, StockStatus,
)
from atelier.services.inventory import (
    apply_movement, export_inventory_csv, get_inventory, get_inventory_item, get_inventory_stats,
    list_movements, to_movement_response,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/admin/inventory", tags=["inventory"])


@router.get("", response_model=InventoryListResponse)
async def list_inventory(
    search: Optional[str] = None,
    category: Optional[str] = None,
    stock: Optional[StockStatus] = None,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    try:
        inventory = await get_inventory(db, search=search, category=category, stock=stock)
        stats = await get_inventory_stats(db)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching inventory: {str(e)}")
        notifier = Notifier()
        notifier.error("Failed to load inventory")
        return InventoryListResponse(inventory=[], stats=None, notifications=notifier.notifications)

    return InventoryListResponse(inventory=inventory, stats=stats)


@router.get("/export", response_class=PlainTextResponse)
async def export_inventory(
    search: Optional[str] = None,
    category: Optional[str] = None,
    stock: Optional[StockStatus] = None,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    inventory = await get_inventory(db, search=search, category=category, stock=stock)
    return PlainTextResponse(
        export_inventory_csv(inventory),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="inventory.csv"'},
    )


@router.get("/movements", response_model=list[StockMovementResponse])
async def get_movements(
    product_id: Optional[int] = None,
    limit: int = 50,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    if limit < 1 or limit > 200:
        limit = 50
    return await list_movements(db, product_id=product_id, limit=limit)


@router.post("/{product_id}/adjust", response_model=StockAdjustmentResponse)
async def adjust_stock(
    product_id: int,
    data: StockAdjustment,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    try:
        product, movement = await apply_movement(db, product_id, data, actor_id=admin.id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InsufficientStockError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PersistenceError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to adjust stock")

    return StockAdjustmentResponse(
        item=await get_inventory_item(db, product.id),
        movement=to_movement_response(movement, admin.name),
    )
