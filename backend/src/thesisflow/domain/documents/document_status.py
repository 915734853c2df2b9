"""DocumentStatus state machine for the thesis approval workflow.

State flow:
    DRAFT → SUBMITTED → REVISION | APPROVED → FINALIZED
    REVISION → SUBMITTED (resubmission)
    SUBMITTED | REVISION | APPROVED → DRAFT (reopen)
    FINALIZED → DRAFT (admin only)

Each allowed pair carries the guard the actor must satisfy. Any pair that
is not listed is rejected regardless of who asks.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List

from ..errors import InvalidTransitionError


class DocumentStatus(str, Enum):
    """Document workflow status.

    Values are stored as TEXT in the database and must match exactly.
    """
    DRAFT = "DRAFT"            # Being written by the students
    SUBMITTED = "SUBMITTED"    # Waiting for an advisor decision
    REVISION = "REVISION"      # Advisor requested changes
    APPROVED = "APPROVED"      # Advisor approved
    FINALIZED = "FINALIZED"    # Ready for defence/publication

    @property
    def workflow_position(self) -> int:
        """Position in the workflow, independent of declaration order."""
        return WORKFLOW_ORDER.index(self)


WORKFLOW_ORDER: List[DocumentStatus] = [
    DocumentStatus.DRAFT,
    DocumentStatus.SUBMITTED,
    DocumentStatus.REVISION,
    DocumentStatus.APPROVED,
    DocumentStatus.FINALIZED,
]


class TransitionGuard(str, Enum):
    """Capability an actor needs to trigger a transition."""
    SUBMIT = "SUBMIT"                  # can_submit_document
    APPROVE = "APPROVE"                # can_approve_document
    EDIT_OR_MANAGE = "EDIT_OR_MANAGE"  # can_edit or can_manage_collaborators
    ADMIN = "ADMIN"                    # global ADMIN role only


@dataclass(frozen=True)
class TransitionRule:
    """Guard and input requirements for one (from, to) pair."""
    guard: TransitionGuard
    requires_reason: bool = False


ALLOWED_TRANSITIONS: Dict[DocumentStatus, Dict[DocumentStatus, TransitionRule]] = {
    DocumentStatus.DRAFT: {
        DocumentStatus.SUBMITTED: TransitionRule(TransitionGuard.SUBMIT),
    },
    DocumentStatus.SUBMITTED: {
        DocumentStatus.REVISION: TransitionRule(TransitionGuard.APPROVE, requires_reason=True),
        DocumentStatus.APPROVED: TransitionRule(TransitionGuard.APPROVE),
        DocumentStatus.DRAFT: TransitionRule(TransitionGuard.EDIT_OR_MANAGE),
    },
    DocumentStatus.REVISION: {
        DocumentStatus.SUBMITTED: TransitionRule(TransitionGuard.SUBMIT),
        DocumentStatus.APPROVED: TransitionRule(TransitionGuard.APPROVE),
        DocumentStatus.DRAFT: TransitionRule(TransitionGuard.EDIT_OR_MANAGE),
    },
    DocumentStatus.APPROVED: {
        DocumentStatus.FINALIZED: TransitionRule(TransitionGuard.EDIT_OR_MANAGE),
        DocumentStatus.DRAFT: TransitionRule(TransitionGuard.EDIT_OR_MANAGE),
    },
    DocumentStatus.FINALIZED: {
        DocumentStatus.DRAFT: TransitionRule(TransitionGuard.ADMIN),
    },
}


def validate_transition(
    current_status: DocumentStatus,
    new_status: DocumentStatus
) -> TransitionRule:
    """Validate that a status transition exists in the table.

    Args:
        current_status: Current document status
        new_status: Requested status

    Returns:
        TransitionRule: Guard and input requirements for the pair

    Raises:
        InvalidTransitionError: If the pair is not an allowed transition
    """
    allowed = ALLOWED_TRANSITIONS.get(current_status, {})
    rule = allowed.get(new_status)
    if rule is None:
        raise InvalidTransitionError(
            f"Invalid transition: {current_status.value} -> {new_status.value}. "
            f"Allowed transitions from {current_status.value}: "
            f"{[s.value for s in allowed]}",
            details={"from": current_status.value, "to": new_status.value},
        )
    return rule


def can_transition(current_status: DocumentStatus, new_status: DocumentStatus) -> bool:
    """Check if a status pair is in the table, ignoring who asks.

    Example:
        >>> can_transition(DocumentStatus.DRAFT, DocumentStatus.SUBMITTED)
        True
        >>> can_transition(DocumentStatus.DRAFT, DocumentStatus.FINALIZED)
        False
    """
    return new_status in ALLOWED_TRANSITIONS.get(current_status, {})


def get_allowed_transitions(status: DocumentStatus) -> List[DocumentStatus]:
    """Get list of statuses reachable from the given status."""
    return list(ALLOWED_TRANSITIONS.get(status, {}))


def parse_status(value: str) -> DocumentStatus:
    """Parse a requested status name.

    Raises:
        InvalidTransitionError: If the name is not a known status
    """
    try:
        return DocumentStatus(str(value).strip().upper())
    except ValueError:
        raise InvalidTransitionError(
            f"Unknown document status: {value}",
            details={"to": value},
        )
