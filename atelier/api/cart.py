from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from atelier.api.dependencies import get_cart, get_checkout_client, get_settings_cache
from atelier.core.checkout_client import CheckoutClient, CheckoutError
from atelier.core.exceptions import CartFullError, NotFoundError
from atelier.core.settings_cache import SettingsCache
from atelier.db.session import get_db
from atelier.schemas.cart import CartItemAdd, CartItemUpdate, CartResponse, CheckoutResponse
from atelier.services.cart import Cart
from atelier.services.checkout import start_checkout
from atelier.services.product import get_product_snapshot
from atelier.services.settings import get_store_settings

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/cart", tags=["cart"])


def cart_response(cart: Cart) -> CartResponse:
    return CartResponse(
        items=cart.state.items,
        total=cart.state.total,
        item_count=cart.state.item_count,
        notifications=cart.notifier.notifications,
    )


@router.get("", response_model=CartResponse)
async def read_cart(cart: Cart = Depends(get_cart)):
    """Get current shopping cart."""
    return cart_response(cart)


@router.post("/add", response_model=CartResponse)
async def add_to_cart(
    item: CartItemAdd,
    cart: Cart = Depends(get_cart),
    db: AsyncSession = Depends(get_db)
):
    """Add a product to the cart if enough stock is left."""
    try:
        product = await get_product_snapshot(db, item.product_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    if not cart.add_product(product, item.quantity):
        error = cart.notifier.notifications[-1]
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{error.title}. {error.description}"
        )

    return cart_response(cart)


@router.put("/update", response_model=CartResponse)
async def update_cart_item(
    item: CartItemUpdate,
    cart: Cart = Depends(get_cart),
    db: AsyncSession = Depends(get_db)
):
    """Set the quantity of a cart line. Zero or less removes it."""
    if item.quantity > 0:
        try:
            product = await get_product_snapshot(db, item.product_id)
        except NotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

        if item.quantity > product.stock_quantity:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Insufficient stock. Only {product.stock_quantity} units available"
            )

    try:
        cart.update_quantity(str(item.product_id), item.quantity)
    except CartFullError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cart is full. Remove an item before adding more."
        )
    return cart_response(cart)


@router.delete("/remove/{product_id}", response_model=CartResponse)
async def remove_from_cart(product_id: str, cart: Cart = Depends(get_cart)):
    """Remove item from cart."""
    cart.remove_item(product_id)
    return cart_response(cart)


@router.post("/clear", response_model=CartResponse)
async def clear_cart(cart: Cart = Depends(get_cart)):
    """Clear entire cart."""
    cart.clear_cart()
    return cart_response(cart)


@router.post("/checkout", response_model=CheckoutResponse)
async def checkout(
    cart: Cart = Depends(get_cart),
    cache: SettingsCache = Depends(get_settings_cache),
    client: CheckoutClient = Depends(get_checkout_client),
    db: AsyncSession = Depends(get_db)
):
    """Hand the cart over to the external checkout flow."""
    store = await get_store_settings(cache, db)

    try:
        redirect_url, handoff = await start_checkout(cart.state, store, client)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except CheckoutError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    cart.notifier.success("Proceeding to checkout")
    return CheckoutResponse(
        redirect_url=redirect_url,
        handoff=handoff,
        notifications=cart.notifier.notifications,
    )
