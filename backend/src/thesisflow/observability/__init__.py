"""Observability module for ThesisFlow.

Provides structured logging, metrics, request correlation and health checks.
"""

from .logging_config import configure_logging, get_logger
from .metrics import (
    authorization_decisions_total,
    document_transitions_total,
    collaborator_operations_total,
    collaborators_migrated_total,
    notifications_published_total,
    active_editors,
    http_request_duration_seconds,
)
from .request_id import REQUEST_ID_HEADER, current_request_id, request_scope, resolve_request_id
from .health import HealthStatus, ComponentHealth
from .middleware import RequestIDMiddleware

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    # Metrics
    "authorization_decisions_total",
    "document_transitions_total",
    "collaborator_operations_total",
    "collaborators_migrated_total",
    "notifications_published_total",
    "active_editors",
    "http_request_duration_seconds",
    # Request ID
    "REQUEST_ID_HEADER",
    "current_request_id",
    "request_scope",
    "resolve_request_id",
    # Health
    "HealthStatus",
    "ComponentHealth",
    # Middleware
    "RequestIDMiddleware",
]
