from pydantic import BaseModel, Field
from decimal import Decimal
from typing import List, Optional

from atelier.core.notifications import Notification


class CartItemInput(BaseModel):
    id: str
    title: str
    unit_price: Decimal = Field(ge=0)
    image: str = ""
    medium: str = ""
    size: str = ""


class CartItem(CartItemInput):
    quantity: int = Field(ge=1)


class CartState(BaseModel):
    items: List[CartItem] = []
    total: Decimal = Decimal("0")
    item_count: int = 0


class ProductSnapshot(BaseModel):
    """Product data as handed over by the product detail page."""
    id: str
    name: str
    price: Decimal
    image_url: Optional[str] = None
    stock_quantity: int
    medium: str = ""
    size: str = ""


class CartItemAdd(BaseModel):
    product_id: int
    quantity: int = 1


class CartItemUpdate(BaseModel):
    product_id: int
    quantity: int


class CartResponse(BaseModel):
    items: List[CartItem]
    total: Decimal
    item_count: int
    notifications: List[Notification] = []


class CheckoutHandoff(BaseModel):
    items: List[CartItem]
    total: Decimal
    item_count: int
    currency: str


class CheckoutResponse(BaseModel):
    redirect_url: str
    handoff: CheckoutHandoff
    notifications: List[Notification] = []
