"""Notification Port - interface for the notification consumer.

The collaboration core decides what happened and who is affected; the
consumer behind this port is responsible for delivery (email, WebSocket).
Events are published only after the unit of work that produced them has
committed, so a rolled-back operation never notifies anyone.
"""

from abc import ABC, abstractmethod
from typing import Iterable

from ..domain.events import DomainEvent


class NotificationPublisher(ABC):
    """Port interface for publishing domain events.

    Example Usage:
        publisher = LoggingNotificationPublisher()
        publisher.publish(DocumentStatusChanged(...))
    """

    @abstractmethod
    def publish(self, event: DomainEvent) -> None:
        """Hand one event to the consumer.

        Args:
            event: Domain event with recipients already resolved
        """
        pass

    def publish_all(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            self.publish(event)
