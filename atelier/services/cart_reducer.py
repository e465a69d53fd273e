"""
Pure cart state machine.

``reduce(state, action)`` never mutates ``state``, never raises and never
performs I/O. ``total`` and ``item_count`` are always recomputed from the
resulting item list.
"""
from decimal import Decimal
from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, Field

from atelier.schemas.cart import CartItem, CartItemInput, CartState


class AddItem(BaseModel):
    type: Literal["ADD_ITEM"] = "ADD_ITEM"
    item: CartItemInput


class RemoveItem(BaseModel):
    type: Literal["REMOVE_ITEM"] = "REMOVE_ITEM"
    id: str


class UpdateQuantity(BaseModel):
    type: Literal["UPDATE_QUANTITY"] = "UPDATE_QUANTITY"
    id: str
    quantity: int


class ClearCart(BaseModel):
    type: Literal["CLEAR_CART"] = "CLEAR_CART"


class LoadCart(BaseModel):
    type: Literal["LOAD_CART"] = "LOAD_CART"
    items: List[CartItem]


CartAction = Annotated[
    Union[AddItem, RemoveItem, UpdateQuantity, ClearCart, LoadCart],
    Field(discriminator="type"),
]


def empty_cart() -> CartState:
    return CartState(items=[], total=Decimal("0"), item_count=0)


def _with_items(items: list[CartItem]) -> CartState:
    total = sum((item.unit_price * item.quantity for item in items), Decimal("0"))
    item_count = sum(item.quantity for item in items)
    return CartState(items=items, total=total, item_count=item_count)


def reduce(state: CartState, action) -> CartState:
    if isinstance(action, AddItem):
        existing = next((item for item in state.items if item.id == action.item.id), None)
        if existing:
            items = [
                item.model_copy(update={"quantity": item.quantity + 1}) if item.id == action.item.id else item
                for item in state.items
            ]
        else:
            items = [*state.items, CartItem(**action.item.model_dump(), quantity=1)]
        return _with_items(items)

    if isinstance(action, RemoveItem):
        return _with_items([item for item in state.items if item.id != action.id])

    if isinstance(action, UpdateQuantity):
        # zero or negative deletes the line
        if action.quantity <= 0:
            return reduce(state, RemoveItem(id=action.id))
        items = [
            item.model_copy(update={"quantity": action.quantity}) if item.id == action.id else item
            for item in state.items
        ]
        return _with_items(items)

    if isinstance(action, ClearCart):
        return empty_cart()

    if isinstance(action, LoadCart):
        return _with_items(list(action.items))

    return state
