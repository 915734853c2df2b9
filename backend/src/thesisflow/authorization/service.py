"""Authorization engine for document actions.

AuthorizationService resolves the actor's binding on a document, applies
the pure policy in ``domain.authorization.policy`` and reports every
decision to the decision audit sink and to Prometheus.

Binding resolution:
1. The actor's active DocumentCollaborator record, if any.
2. Legacy fallback: a document that has no primary of a family recorded
   treats its legacy student/advisor as that family's primary with
   FULL_ACCESS. Once a primary collaborator exists the legacy field is
   ignored.
3. Otherwise no binding. Admins still pass the bypassable checks.
"""

from typing import Dict, Iterable, List, Optional

from ..audit.decisions import (
    AuthorizationDecision,
    DecisionAuditSink,
    DecisionResult,
    LoggingDecisionAuditSink,
)
from ..domain.authorization.policy import Binding, DocumentAction, Grant, decide
from ..domain.collaboration.roles import CollaboratorPermission, CollaboratorRole
from ..domain.errors import PermissionDeniedError
from ..models.document import Document
from ..models.user import User
from ..observability.logging_config import get_logger
from ..observability.metrics import authorization_decisions_total

logger = get_logger(__name__)

# Label used when a transition requires the global ADMIN role
ADMIN_OVERRIDE = "ADMIN_OVERRIDE"


class AuthorizationService:
    """Decides and audits what a user may do on a document."""

    def __init__(self, audit_sink: Optional[DecisionAuditSink] = None):
        self.audit_sink = audit_sink or LoggingDecisionAuditSink()

    # ------------------------------------------------------------------
    # Binding resolution
    # ------------------------------------------------------------------

    def binding_for(self, user: User, document: Document) -> Optional[Binding]:
        """Resolve the binding the policy evaluates for ``user``."""
        collaborator = document.get_collaborator(user.id)
        if collaborator is not None:
            return collaborator

        if document.legacy_student_id == user.id and not document.has_primary_student():
            return Grant(CollaboratorRole.PRIMARY_STUDENT, CollaboratorPermission.FULL_ACCESS)
        if document.legacy_advisor_id == user.id and not document.has_primary_advisor():
            return Grant(CollaboratorRole.PRIMARY_ADVISOR, CollaboratorPermission.FULL_ACCESS)
        return None

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def _record(self, user: User, document: Document, action: str, granted: bool) -> bool:
        result = DecisionResult.GRANTED if granted else DecisionResult.DENIED
        authorization_decisions_total.labels(action=action, result=result.value).inc()
        self.audit_sink.record(
            AuthorizationDecision(
                actor_id=user.id,
                action=action,
                resource_id=document.id,
                result=result,
            )
        )
        return granted

    def decide(self, user: User, document: Document, action: DocumentAction) -> bool:
        """Evaluate and audit one action."""
        granted = decide(action, self.binding_for(user, document), user.is_admin)
        return self._record(user, document, action.value, granted)

    def has_access(self, user: User, document: Document) -> bool:
        return self.decide(user, document, DocumentAction.VIEW)

    def can_edit(self, user: User, document: Document) -> bool:
        return self.decide(user, document, DocumentAction.EDIT)

    def can_manage_collaborators(self, user: User, document: Document) -> bool:
        return self.decide(user, document, DocumentAction.MANAGE_COLLABORATORS)

    def can_submit_document(self, user: User, document: Document) -> bool:
        return self.decide(user, document, DocumentAction.SUBMIT)

    def can_approve_document(self, user: User, document: Document) -> bool:
        return self.decide(user, document, DocumentAction.APPROVE)

    def can_delete_document(self, user: User, document: Document) -> bool:
        return self.decide(user, document, DocumentAction.DELETE)

    def is_admin(self, user: User, document: Document) -> bool:
        """Audited check for transitions reserved to the global ADMIN role."""
        return self._record(user, document, ADMIN_OVERRIDE, user.is_admin)

    def capabilities(self, user: User, document: Document) -> Dict[str, bool]:
        """All decisions at once, keyed by lower-case action name."""
        return {
            action.value.lower(): self.decide(user, document, action)
            for action in DocumentAction
        }

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _deny(self, user: User, document: Document, label: str) -> PermissionDeniedError:
        logger.warning(
            f"Unauthorized access attempt: {label}",
            extra={"actor_id": user.id, "document_id": document.id, "action": label},
        )
        return PermissionDeniedError(
            f"Permission denied: {label} on document {document.id}",
            details={"action": label, "document_id": str(document.id)},
        )

    def require(self, user: User, document: Document, action: DocumentAction) -> None:
        """Raise PermissionDeniedError unless ``action`` is granted.

        Raises:
            PermissionDeniedError: If the decision is negative
        """
        if not self.decide(user, document, action):
            raise self._deny(user, document, action.value)

    def require_any(self, user: User, document: Document, actions: Iterable[DocumentAction]) -> None:
        """Raise PermissionDeniedError unless at least one action is granted.

        Evaluation stops at the first granted action.
        """
        evaluated: List[str] = []
        for action in actions:
            evaluated.append(action.value)
            if self.decide(user, document, action):
                return
        raise self._deny(user, document, "_OR_".join(evaluated))

    def require_admin(self, user: User, document: Document) -> None:
        if not self.is_admin(user, document):
            raise self._deny(user, document, ADMIN_OVERRIDE)
