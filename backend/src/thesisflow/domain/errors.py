"""Error taxonomy for the collaboration and lifecycle core.

Every failure raised by the core is one of these types. None of them is
retried internally; the request layer translates them to HTTP responses
using ``status_code`` and ``error_code``.

┌────────────────────────┬──────┬──────────────────────────────────────────────┐
│ Error                  │ HTTP │ Raised when                                  │
├────────────────────────┼──────┼──────────────────────────────────────────────┤
│ NotFoundError          │ 404  │ document, user or collaborator is missing    │
│ PermissionDeniedError  │ 403  │ an authorization guard failed                │
│ BusinessRuleError      │ 400  │ role mismatch, capacity, duplicate, primary  │
│ InvalidTransitionError │ 400  │ status pair not in the transition table      │
│ ConflictError          │ 409  │ unique-constraint race, caller retries once  │
└────────────────────────┴──────┴──────────────────────────────────────────────┘
"""

from typing import Any, Dict, Optional


class ThesisFlowError(Exception):
    """Base class for all domain errors."""
    status_code: int = 400
    error_code: str = "error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.error_code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFoundError(ThesisFlowError):
    """Raised when a document, user or collaborator does not exist."""
    status_code = 404
    error_code = "not_found"


class PermissionDeniedError(ThesisFlowError):
    """Raised when the actor fails an authorization guard."""
    status_code = 403
    error_code = "permission_denied"


class BusinessRuleError(ThesisFlowError):
    """Raised when a collaboration rule is violated."""
    status_code = 400
    error_code = "business_rule_violation"


class InvalidTransitionError(ThesisFlowError):
    """Raised when a status change is not in the transition table."""
    status_code = 400
    error_code = "invalid_transition"


class ConflictError(ThesisFlowError):
    """Raised when a concurrent write hit a unique constraint."""
    status_code = 409
    error_code = "conflict"
