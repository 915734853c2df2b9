"""Prometheus metrics for ThesisFlow.

Defines and exposes operational metrics for monitoring and alerting.
"""

from prometheus_client import Counter, Gauge, Histogram

# Authorization metrics
authorization_decisions_total = Counter(
    "thesisflow_authorization_decisions_total",
    "Total authorization decisions",
    ["action", "result"]  # result: GRANTED|DENIED
)

# Workflow metrics
document_transitions_total = Counter(
    "thesisflow_document_transitions_total",
    "Total applied document status transitions",
    ["from_status", "to_status"]
)

# Collaboration metrics
collaborator_operations_total = Counter(
    "thesisflow_collaborator_operations_total",
    "Total collaborator registry operations",
    ["operation", "status"]  # status: success|rejected
)

collaborators_migrated_total = Counter(
    "thesisflow_collaborators_migrated_total",
    "Primary collaborator records synthesized from legacy fields",
    ["role"]
)

# Notification metrics
notifications_published_total = Counter(
    "thesisflow_notifications_published_total",
    "Total domain events handed to the notification publisher",
    ["event_type"]
)

# Live editing metrics
active_editors = Gauge(
    "thesisflow_active_editors",
    "Number of users currently editing any document"
)

# HTTP metrics
http_request_duration_seconds = Histogram(
    "thesisflow_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "status_code"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)
