"""
Base notifier interface for "task now actionable" messages.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from ptt.models import DeliveryStatus
from ptt.settings import Settings

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised by a transport when a message could not be delivered."""


@dataclass(frozen=True)
class NotificationConfig:
    """Explicit notifier configuration."""

    enabled: bool = True
    client_url: str = "http://localhost:3000"

    @classmethod
    def from_settings(cls, settings: Settings) -> "NotificationConfig":
        return cls(enabled=settings.notifications_enabled, client_url=settings.client_url)


class Notifier(ABC):
    """
    Base class for notifiers.

    Subclasses implement `deliver` for a concrete transport. `notify` applies
    the configuration and turns transport failures into a FAILED status so
    that callers never have to handle them.
    """

    def __init__(self, config: NotificationConfig | None = None):
        self.config = config or NotificationConfig()

    async def notify(self, recipients: list[str], subject: str, body: str) -> DeliveryStatus:
        """
        Send one message to a list of departments or users.

        Returns:
            DELIVERED, FAILED, or SKIPPED when disabled or nobody to notify
        """
        if not self.config.enabled or not recipients:
            return DeliveryStatus.SKIPPED

        try:
            await self.deliver(recipients, subject, body)
        except NotificationError as e:
            logger.warning("Notification %r to %s failed: %s", subject, recipients, e)
            return DeliveryStatus.FAILED

        return DeliveryStatus.DELIVERED

    @abstractmethod
    async def deliver(self, recipients: list[str], subject: str, body: str) -> None:
        """
        Hand the message to the transport.

        Raises:
            NotificationError: If delivery failed
        """

    def season_url(self, season_id: str) -> str:
        return f"{self.config.client_url.rstrip('/')}/seasons/{season_id}"
