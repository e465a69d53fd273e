import logging
from typing import Literal, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Notification(BaseModel):
    level: Literal["success", "error", "info"]
    title: str
    description: Optional[str] = None


class Notifier:
    """Collects user-facing toast messages for the current request."""

    def __init__(self):
        self.notifications: list[Notification] = []

    def _push(self, level: str, title: str, description: Optional[str] = None) -> Notification:
        notification = Notification(level=level, title=title, description=description)
        self.notifications.append(notification)
        logger.debug(f"Notification [{level}]: {title}")
        return notification

    def success(self, title: str, description: Optional[str] = None) -> Notification:
        return self._push("success", title, description)

    def error(self, title: str, description: Optional[str] = None) -> Notification:
        return self._push("error", title, description)

    def info(self, title: str, description: Optional[str] = None) -> Notification:
        return self._push("info", title, description)
