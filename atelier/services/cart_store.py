import base64
import json
import logging
from typing import MutableMapping

from pydantic import TypeAdapter, ValidationError

from atelier.core.config import settings
from atelier.core.exceptions import CartFullError
from atelier.schemas.cart import CartItem

logger = logging.getLogger(__name__)

_items_adapter = TypeAdapter(list[CartItem])


class CartStore:
    """
    Keeps the cart items under one key of a key-value storage.

    In the web layer the storage is ``request.session``. Only items are
    written, totals are always derived on load. A snapshot whose encoded
    size exceeds ``max_bytes`` is never written.
    """

    def __init__(self, storage: MutableMapping, key: str = None, max_bytes: int = None):
        self.storage = storage
        self.key = key or settings.CART_STORAGE_KEY
        self.max_bytes = max_bytes if max_bytes is not None else settings.CART_COOKIE_MAX_BYTES

    def _serialize(self, items: list[CartItem]) -> str:
        return _items_adapter.dump_json(items).decode()

    def encoded_size(self, payload: str) -> int:
        """Bytes the payload takes once the session cookie encodes it (JSON, then base64)."""
        return len(base64.b64encode(json.dumps({self.key: payload}).encode("utf-8")))

    def load(self) -> list[CartItem]:
        raw = self.storage.get(self.key)
        if raw is None:
            return []

        try:
            items = _items_adapter.validate_json(raw)
        except (ValidationError, TypeError, ValueError) as e:
            logger.warning(f"Failed to load cart from storage key '{self.key}': {str(e)}")
            return []

        ids = [item.id for item in items]
        if len(ids) != len(set(ids)):
            logger.warning(f"Discarding cart snapshot with duplicate product ids: {ids}")
            return []

        size = self.encoded_size(self._serialize(items))
        if size > self.max_bytes:
            logger.warning(f"Discarding cart snapshot of {size} bytes (limit {self.max_bytes})")
            return []

        return items

    def save(self, items: list[CartItem]) -> None:
        payload = self._serialize(items)
        size = self.encoded_size(payload)
        if size > self.max_bytes:
            raise CartFullError(size, self.max_bytes)
        self.storage[self.key] = payload
