from pydantic import BaseModel
from typing import Optional
from decimal import Decimal
from datetime import datetime


class ProductResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    price: Decimal
    image_url: Optional[str] = None
    medium: Optional[str] = None
    size: Optional[str] = None
    stock_quantity: int
    in_stock: bool
    featured: bool = False
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
