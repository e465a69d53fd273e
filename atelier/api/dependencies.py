from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.core.checkout_client import CheckoutClient
from atelier.core.notifications import Notifier
from atelier.core.settings_cache import SettingsCache
from atelier.db.models import User, UserRole
from atelier.db.session import get_db
from atelier.services.cart import Cart
from atelier.services.cart_store import CartStore


async def get_current_admin(
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> User:
    """Admin user from the session (the session is populated by the auth layer)."""
    user_id = request.session.get("user_id")

    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated. Please log in.",
        )

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    if user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )

    return user


def get_cart(request: Request) -> Cart:
    """One cart per request, hydrated from the session cookie."""
    return Cart(CartStore(request.session), Notifier())


def get_settings_cache(request: Request) -> SettingsCache:
    return request.app.state.settings_cache


def get_checkout_client(request: Request) -> CheckoutClient:
    return request.app.state.checkout_client
