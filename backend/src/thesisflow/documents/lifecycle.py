"""Document lifecycle state machine.

Applies status transitions from ``ALLOWED_TRANSITIONS`` after checking the
pair's guard against the actor, then sets the timestamp side effects:

┌──────────────────────┬──────────────────────────────────────────────────┐
│ Target               │ Side effect                                      │
├──────────────────────┼──────────────────────────────────────────────────┤
│ SUBMITTED            │ submitted_at = now, rejection fields cleared     │
│ REVISION             │ rejection_reason = reason, rejected_at = now     │
│ APPROVED             │ approved_at = now, rejection fields cleared      │
│ FINALIZED            │ none                                             │
│ DRAFT                │ submitted/approved/rejected fields cleared       │
└──────────────────────┴──────────────────────────────────────────────────┘

A transition that changes the status emits DocumentStatusChanged after
the unit of work commits.
"""

from typing import Dict, List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.orm import Session

from ..audit.service import log_audit_event
from ..authorization.service import AuthorizationService
from ..database import transaction
from ..domain.authorization.policy import DocumentAction
from ..domain.documents.document_status import (
    DocumentStatus,
    TransitionGuard,
    TransitionRule,
    ALLOWED_TRANSITIONS,
    parse_status,
    validate_transition,
)
from ..domain.errors import BusinessRuleError
from ..domain.events import DocumentStatusChanged
from ..models.base import utcnow
from ..models.document import Document
from ..models.user import User
from ..notifications.ports import NotificationPublisher
from ..notifications.publishers import LoggingNotificationPublisher
from ..notifications.recipients import status_change_recipients
from ..observability.logging_config import get_logger
from ..observability.metrics import document_transitions_total
from .service import load_document

logger = get_logger(__name__)

GUARD_ACTIONS: Dict[TransitionGuard, Tuple[DocumentAction, ...]] = {
    TransitionGuard.SUBMIT: (DocumentAction.SUBMIT,),
    TransitionGuard.APPROVE: (DocumentAction.APPROVE,),
    TransitionGuard.EDIT_OR_MANAGE: (DocumentAction.EDIT, DocumentAction.MANAGE_COLLABORATORS),
}


def apply_side_effects(document: Document, new_status: DocumentStatus, reason: Optional[str]) -> None:
    """Set or clear the workflow timestamps for ``new_status``."""
    now = utcnow()
    if new_status == DocumentStatus.SUBMITTED:
        document.submitted_at = now
        document.rejected_at = None
        document.rejection_reason = None
    elif new_status == DocumentStatus.REVISION:
        document.rejection_reason = reason
        document.rejected_at = now
    elif new_status == DocumentStatus.APPROVED:
        document.approved_at = now
        document.rejected_at = None
        document.rejection_reason = None
    elif new_status == DocumentStatus.DRAFT:
        document.submitted_at = None
        document.approved_at = None
        document.rejected_at = None
        document.rejection_reason = None


class DocumentLifecycleService:
    """Service applying guarded status transitions."""

    def __init__(
        self,
        db: Session,
        authorization: Optional[AuthorizationService] = None,
        publisher: Optional[NotificationPublisher] = None,
    ):
        self.db = db
        self.authorization = authorization or AuthorizationService()
        self.publisher = publisher or LoggingNotificationPublisher()

    def _require_guard(self, rule: TransitionRule, actor: User, document: Document) -> None:
        if rule.guard == TransitionGuard.ADMIN:
            self.authorization.require_admin(actor, document)
        else:
            self.authorization.require_any(actor, document, GUARD_ACTIONS[rule.guard])

    def _guard_passes(self, rule: TransitionRule, actor: User, document: Document) -> bool:
        if rule.guard == TransitionGuard.ADMIN:
            return self.authorization.is_admin(actor, document)
        return any(
            self.authorization.decide(actor, document, action)
            for action in GUARD_ACTIONS[rule.guard]
        )

    def change_status(
        self,
        document_id: UUID,
        actor: User,
        new_status: Union[DocumentStatus, str],
        reason: Optional[str] = None,
    ) -> Document:
        """Move a document to ``new_status``.

        Args:
            document_id: Document to transition
            actor: User requesting the change
            new_status: Target status (enum or name)
            reason: Required (non-blank) when sending back for REVISION

        Returns:
            Document: The updated document

        Raises:
            NotFoundError: Document does not exist
            PermissionDeniedError: Actor cannot view the document or fails the guard
            InvalidTransitionError: Pair is not in the transition table, or unknown status
            BusinessRuleError: Required reason missing
        """
        target = new_status if isinstance(new_status, DocumentStatus) else parse_status(new_status)
        reason = reason.strip() if reason else None

        with transaction(self.db):
            document = load_document(self.db, document_id)
            # Outsiders learn nothing about the status graph: VIEW precedes validation
            self.authorization.require(actor, document, DocumentAction.VIEW)

            old_status = document.status
            rule = validate_transition(old_status, target)
            self._require_guard(rule, actor, document)

            if rule.requires_reason and not reason:
                raise BusinessRuleError(
                    f"A reason is required to move a document to {target.value}",
                    details={"from": old_status.value, "to": target.value},
                )

            apply_side_effects(document, target, reason)
            document.status = target

            log_audit_event(
                self.db,
                action="DOCUMENT_STATUS_CHANGED",
                actor_id=actor.id,
                entity_type="document",
                entity_id=document.id,
                metadata={"from": old_status.value, "to": target.value, "reason": reason},
            )

            event = None
            if old_status != target:
                event = DocumentStatusChanged(
                    document_id=document.id,
                    document_title=document.title,
                    actor_id=actor.id,
                    recipient_ids=status_change_recipients(document, target, actor.id),
                    old_status=old_status,
                    new_status=target,
                    reason=reason,
                )

        document_transitions_total.labels(from_status=old_status.value, to_status=target.value).inc()
        logger.info(
            f"Document status changed: {old_status.value} -> {target.value}",
            extra={
                "document_id": document_id,
                "actor_id": actor.id,
                "old_status": old_status.value,
                "new_status": target.value,
            },
        )
        if event is not None:
            self.publisher.publish(event)
        return document

    def allowed_transitions(self, actor: User, document: Document) -> List[DocumentStatus]:
        """Targets the actor could trigger from the document's current status."""
        rules = ALLOWED_TRANSITIONS.get(document.status, {})
        return [
            target for target, rule in rules.items()
            if self._guard_passes(rule, actor, document)
        ]
