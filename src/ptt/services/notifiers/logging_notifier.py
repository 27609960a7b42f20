"""
Notifier that writes messages to the application log.

Used when no outbound transport is wired in (local runs, CLI).
"""

import logging

from .base import Notifier

logger = logging.getLogger(__name__)


class LoggingNotifier(Notifier):
    """Logs each message instead of sending it."""

    async def deliver(self, recipients: list[str], subject: str, body: str) -> None:
        logger.info("Notify %s: %s\n%s", ", ".join(recipients), subject, body)
