"""
Notifier implementations.
"""

from .base import NotificationConfig, NotificationError, Notifier
from .logging_notifier import LoggingNotifier

__all__ = ["LoggingNotifier", "NotificationConfig", "NotificationError", "Notifier"]
