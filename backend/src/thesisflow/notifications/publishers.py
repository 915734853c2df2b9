"""Notification publisher adapters."""

import threading
from typing import List, Type

from ..domain.events import DomainEvent
from ..observability.logging_config import get_logger
from ..observability.metrics import notifications_published_total
from .ports import NotificationPublisher

logger = get_logger(__name__)


class LoggingNotificationPublisher(NotificationPublisher):
    """Default adapter: logs each event for a downstream delivery worker."""

    def publish(self, event: DomainEvent) -> None:
        notifications_published_total.labels(event_type=event.event_type).inc()
        logger.info(
            f"Notification {event.event_type} for {len(event.recipient_ids)} recipient(s)",
            extra={
                "event_type": event.event_type,
                "document_id": event.document_id,
                "actor_id": event.actor_id,
            },
        )


class InMemoryNotificationPublisher(NotificationPublisher):
    """Collects events in memory so tests can assert on them."""

    def __init__(self):
        self._lock = threading.Lock()
        self.events: List[DomainEvent] = []

    def publish(self, event: DomainEvent) -> None:
        notifications_published_total.labels(event_type=event.event_type).inc()
        with self._lock:
            self.events.append(event)

    def of_type(self, event_class: Type[DomainEvent]) -> List[DomainEvent]:
        return [e for e in self.events if isinstance(e, event_class)]

    def clear(self) -> None:
        with self._lock:
            self.events.clear()
