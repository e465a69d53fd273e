class NotFoundError(ValueError):
    """Raised when the requested product, category or order does not exist."""


class LedgerValidationError(ValueError):
    """Raised when a stock movement is rejected before touching any row."""


class InsufficientStockError(ValueError):
    """Raised when an OUT movement asks for more units than are on hand."""

    def __init__(self, available: int, requested: int):
        self.available = available
        self.requested = requested
        super().__init__(f"Insufficient stock. Only {available} units available, {requested} requested")


class PersistenceError(Exception):
    """Raised when a write could not be committed; the transaction was rolled back."""


class CartFullError(ValueError):
    """Raised when the cart would no longer fit in the session cookie."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Cart is full: {size} of {limit} bytes")
