"""Audit trail: persisted mutation events and authorization decision sinks."""

from .service import log_audit_event
from .decisions import (
    AuthorizationDecision,
    DecisionAuditSink,
    DecisionResult,
    InMemoryDecisionAuditSink,
    LoggingDecisionAuditSink,
)

__all__ = [
    "log_audit_event",
    "AuthorizationDecision",
    "DecisionAuditSink",
    "DecisionResult",
    "InMemoryDecisionAuditSink",
    "LoggingDecisionAuditSink",
]
