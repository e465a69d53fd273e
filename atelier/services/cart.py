import logging

from atelier.core.exceptions import CartFullError
from atelier.core.notifications import Notifier
from atelier.schemas.cart import CartItemInput, CartState, ProductSnapshot
from atelier.services.cart_reducer import (
    AddItem, ClearCart, LoadCart, RemoveItem, UpdateQuantity, empty_cart, reduce,
)
from atelier.services.cart_store import CartStore

logger = logging.getLogger(__name__)


def snapshot_to_item(product: ProductSnapshot) -> CartItemInput:
    return CartItemInput(
        id=product.id,
        title=product.name,
        unit_price=product.price,
        image=product.image_url or "",
        medium=product.medium,
        size=product.size,
    )


class Cart:
    """
    Imperative cart operations over the pure reducer.

    Hydrates once from the store on construction and writes the items back
    after every dispatch. When the store refuses a snapshot the previous
    state is kept. Every operation that changes the cart reports to the
    notifier.
    """

    def __init__(self, store: CartStore, notifier: Notifier = None):
        self.store = store
        self.notifier = notifier or Notifier()
        self.state: CartState = empty_cart()
        self.dispatch(LoadCart(items=store.load()))

    def dispatch(self, *actions) -> CartState:
        state = self.state
        for action in actions:
            state = reduce(state, action)
        self.store.save(state.items)
        self.state = state
        return self.state

    def quantity_of(self, item_id: str) -> int:
        item = next((i for i in self.state.items if i.id == item_id), None)
        return item.quantity if item else 0

    def _cart_full(self, error: CartFullError) -> None:
        logger.warning(f"Cart change refused: {str(error)}")
        self.notifier.error("Cart is full", "Remove an item before adding more.")

    def add_item(self, item: CartItemInput) -> CartState:
        try:
            self.dispatch(AddItem(item=item))
        except CartFullError as e:
            self._cart_full(e)
            raise
        logger.info(f"Added to cart: id={item.id}")
        self.notifier.success("Added to cart", f"{item.title} has been added to your cart.")
        return self.state

    def remove_item(self, item_id: str) -> CartState:
        before = self.state
        self.dispatch(RemoveItem(id=item_id))
        if self.state != before:
            logger.info(f"Removed from cart: id={item_id}")
            self.notifier.success("Removed from cart")
        return self.state

    def update_quantity(self, item_id: str, quantity: int) -> CartState:
        before = self.state
        try:
            self.dispatch(UpdateQuantity(id=item_id, quantity=quantity))
        except CartFullError as e:
            self._cart_full(e)
            raise
        if self.state == before:
            return self.state

        logger.info(f"Updated cart item: id={item_id}, quantity={quantity}")
        if quantity <= 0:
            self.notifier.success("Removed from cart")
        else:
            self.notifier.success("Cart updated")
        return self.state

    def clear_cart(self) -> CartState:
        self.dispatch(ClearCart())
        logger.info("Cart cleared")
        self.notifier.success("Cart cleared")
        return self.state

    def add_product(self, product: ProductSnapshot, quantity: int = 1) -> bool:
        """
        Stock-gated add used by product pages.

        Returns False and leaves the cart untouched when stock is short or
        the cart would no longer fit in its storage.
        """
        new_quantity = self.quantity_of(product.id) + quantity
        if quantity < 1 or new_quantity > product.stock_quantity:
            logger.info(
                f"Rejected add to cart: id={product.id}, requested={new_quantity}, "
                f"available={product.stock_quantity}"
            )
            self.notifier.error("Not enough stock available", f"Only {product.stock_quantity} units available")
            return False

        actions = [AddItem(item=snapshot_to_item(product))]
        if quantity > 1:
            actions.append(UpdateQuantity(id=product.id, quantity=new_quantity))
        try:
            self.dispatch(*actions)
        except CartFullError as e:
            self._cart_full(e)
            return False

        logger.info(f"Added to cart: id={product.id}, quantity={quantity}")
        self.notifier.success(f"{quantity} {'item' if quantity == 1 else 'items'} added to cart!")
        return True
