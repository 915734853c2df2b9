"""Notification consumer port, adapters and recipient routing."""

from .ports import NotificationPublisher
from .publishers import InMemoryNotificationPublisher, LoggingNotificationPublisher
from .recipients import status_change_recipients, document_members

__all__ = [
    "NotificationPublisher",
    "InMemoryNotificationPublisher",
    "LoggingNotificationPublisher",
    "status_change_recipients",
    "document_members",
]
