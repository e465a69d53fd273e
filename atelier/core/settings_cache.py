import logging
import time
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class SettingsCache:
    """
    Holds the last loaded store settings for ``ttl_seconds``.

    The loader is awaited on a miss; ``invalidate`` forces the next ``get``
    to reload. One instance lives on ``app.state`` for the process.
    """

    def __init__(
        self,
        loader: Callable[..., Awaitable[Any]],
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader
        self._ttl = ttl_seconds
        self._clock = clock
        self._value: Optional[Any] = None
        self._expires_at: float = 0.0

    @property
    def is_fresh(self) -> bool:
        return self._value is not None and self._clock() < self._expires_at

    async def get(self, *args, **kwargs) -> Any:
        if self.is_fresh:
            return self._value

        logger.debug("Settings cache miss, reloading")
        self._value = await self._loader(*args, **kwargs)
        self._expires_at = self._clock() + self._ttl
        return self._value

    def invalidate(self) -> None:
        self._value = None
        self._expires_at = 0.0
