"""Document domain module

Exports the document workflow status and its transition table.
"""

from .document_status import (
    DocumentStatus,
    TransitionGuard,
    TransitionRule,
    ALLOWED_TRANSITIONS,
    WORKFLOW_ORDER,
    can_transition,
    get_allowed_transitions,
    validate_transition,
    parse_status,
)

__all__ = [
    "DocumentStatus",
    "TransitionGuard",
    "TransitionRule",
    "ALLOWED_TRANSITIONS",
    "WORKFLOW_ORDER",
    "can_transition",
    "get_allowed_transitions",
    "validate_transition",
    "parse_status",
]
