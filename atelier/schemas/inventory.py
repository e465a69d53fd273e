from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
import enum

from atelier.db.models import MovementType
from atelier.core.notifications import Notification


class StockStatus(str, enum.Enum):
    OUT_OF_STOCK = "out-of-stock"
    LOW_STOCK = "low-stock"
    IN_STOCK = "in-stock"


class MovementReason(str, enum.Enum):
    RECEIVED = "received"
    SOLD = "sold"
    DAMAGED = "damaged"
    RETURNED = "returned"
    ADJUSTMENT = "adjustment"
    OTHER = "other"


class StockAdjustment(BaseModel):
    type: MovementType
    quantity: int = Field(gt=0)
    reason: MovementReason
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("notes")
    @classmethod
    def blank_notes_to_none(cls, value):
        if value is not None and not value.strip():
            return None
        return value


class InventoryCategory(BaseModel):
    id: int
    name: str


class InventoryItem(BaseModel):
    id: int
    name: str
    sku: Optional[str] = None
    image_url: Optional[str] = None
    stock_quantity: int
    low_stock_threshold: int
    price: Decimal
    status: StockStatus
    category: Optional[InventoryCategory] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class InventoryStats(BaseModel):
    total_products: int
    low_stock_items: int
    out_of_stock_items: int
    total_value: Decimal
    recent_changes: int


class InventoryListResponse(BaseModel):
    inventory: List[InventoryItem] = []
    stats: Optional[InventoryStats] = None
    notifications: List[Notification] = []


class StockMovementResponse(BaseModel):
    id: int
    product_id: int
    type: MovementType
    quantity: int
    reason: str
    notes: Optional[str] = None
    previous_quantity: int
    new_quantity: int
    created_at: datetime
    created_by: Optional[str] = None

    class Config:
        from_attributes = True


class StockAdjustmentResponse(BaseModel):
    item: InventoryItem
    movement: StockMovementResponse
