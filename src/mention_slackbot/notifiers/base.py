from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from mention_slackbot.models import Item

logger = logging.getLogger(__name__)


class NotificationError(RuntimeError):
    """Raised when a message could not be delivered."""


class Notifier(ABC):
    def __init__(self, *, enabled: bool) -> None:
        self.enabled = enabled

    def notify(self, item: Item) -> bool:
        """Deliver ``item``'s message; return False when notifications are off.

        Delivery failures raise ``NotificationError``.
        """
        if not self.enabled:
            return False

        logger.info(
            "Notifying slack | source=%s key=%s title=%s",
            item.source_type,
            item.natural_key,
            item.title,
        )
        self.deliver(self.build_payload(item))
        return True

    @abstractmethod
    def build_payload(self, item: Item) -> dict[str, Any]:
        """Render the transport payload for ``item``."""

    @abstractmethod
    def deliver(self, payload: dict[str, Any]) -> None:
        """Send a rendered payload."""
