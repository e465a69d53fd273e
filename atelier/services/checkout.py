import logging

from atelier.core.checkout_client import CheckoutClient
from atelier.core.config import settings
from atelier.schemas.cart import CartState, CheckoutHandoff
from atelier.schemas.settings import StoreSettings

logger = logging.getLogger(__name__)


def build_handoff(state: CartState, currency: str) -> CheckoutHandoff:
    if not state.items:
        raise ValueError("Cart is empty")

    return CheckoutHandoff(
        items=state.items,
        total=state.total,
        item_count=state.item_count,
        currency=currency,
    )


async def start_checkout(state: CartState, store: StoreSettings, client: CheckoutClient) -> tuple[str, CheckoutHandoff]:
    """Returns the redirect URL and the handoff payload. Payment itself happens elsewhere."""
    if not store.enable_payment:
        raise ValueError("Checkout is currently disabled")

    handoff = build_handoff(state, store.currency)

    if client.enabled:
        redirect_url = await client.create_session(handoff)
    else:
        redirect_url = settings.CHECKOUT_REDIRECT_PATH

    logger.info(f"Checkout handoff: {handoff.item_count} items, total {handoff.total} {handoff.currency}")
    return redirect_url, handoff
