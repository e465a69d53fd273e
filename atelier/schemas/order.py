from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from decimal import Decimal
from datetime import datetime

from atelier.db.models import OrderStatus


class OrderItemResponse(BaseModel):
    product_id: int
    product_name: str
    quantity: int
    price_snapshot: Decimal

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    order_number: str
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    total: Decimal
    status: OrderStatus
    created_at: datetime
    items: List[OrderItemResponse] = []

    class Config:
        from_attributes = True


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderBulkStatusUpdate(BaseModel):
    order_ids: List[int] = Field(min_length=1)
    status: OrderStatus


class OrderListResponse(BaseModel):
    items: List[OrderResponse]
    total: int
    page: int
    limit: int
    total_pages: int
    status_counts: Dict[str, int] = {}
