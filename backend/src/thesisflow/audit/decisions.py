"""Authorization decision audit port and adapters.

Every authorization decision, positive or negative, is handed to a
DecisionAuditSink with the actor, action, resource id and result tag.
Sinks sit outside the database session: a denied request rolls its unit
of work back, and the denial must still be recorded.

Adapters:
- LoggingDecisionAuditSink: structured log line per decision (default)
- InMemoryDecisionAuditSink: keeps decisions in a list (tests, previews)
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import UUID

from ..observability.logging_config import get_logger

logger = get_logger("thesisflow.audit.decisions")


class DecisionResult(str, Enum):
    GRANTED = "GRANTED"
    DENIED = "DENIED"


@dataclass(frozen=True)
class AuthorizationDecision:
    """One authorization decision as reported to the audit consumer."""
    actor_id: Optional[UUID]
    action: str
    resource_id: Optional[UUID]
    result: DecisionResult
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def granted(self) -> bool:
        return self.result == DecisionResult.GRANTED


class DecisionAuditSink(ABC):
    """Port receiving every authorization decision."""

    @abstractmethod
    def record(self, decision: AuthorizationDecision) -> None:
        """Record a decision. Must not raise for ordinary input."""
        pass


class LoggingDecisionAuditSink(DecisionAuditSink):
    """Writes each decision as a structured log line.

    Denials are logged at WARNING so they stand out as unauthorized access
    attempts; grants at DEBUG.
    """

    def record(self, decision: AuthorizationDecision) -> None:
        level = logging.DEBUG if decision.granted else logging.WARNING
        logger.log(
            level,
            f"Authorization {decision.result.value}: {decision.action}",
            extra={
                "actor_id": decision.actor_id,
                "action": decision.action,
                "document_id": decision.resource_id,
                "result": decision.result.value,
            },
        )


class InMemoryDecisionAuditSink(DecisionAuditSink):
    """Keeps decisions in memory."""

    def __init__(self):
        self._lock = threading.Lock()
        self.decisions: List[AuthorizationDecision] = []

    def record(self, decision: AuthorizationDecision) -> None:
        with self._lock:
            self.decisions.append(decision)

    def denied(self) -> List[AuthorizationDecision]:
        return [d for d in self.decisions if not d.granted]

    def clear(self) -> None:
        with self._lock:
            self.decisions.clear()
