"""Collaborator registry - add, remove, update and promote collaborators.

Rules enforced here (storage constraints back up the first two):
- one row per (document, user); re-adding a removed collaborator
  reactivates that row instead of inserting a new one
- at most one active PRIMARY_STUDENT and one active PRIMARY_ADVISOR
- student-family roles need the global STUDENT role, advisor-family
  roles the global ADVISOR role
- capacity: MAX_SECONDARY_STUDENTS / MAX_SECONDARY_ADVISORS active secondaries
- primaries are neither removed nor edited here; they change only via
  promote_to_primary
- an OBSERVER holds READ_ONLY and nothing else

Each public method is one unit of work. Domain events are published
after the commit.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from ..audit.service import log_audit_event
from ..auth.roles import required_global_role
from ..authorization.service import AuthorizationService
from ..config import Settings, get_settings
from ..database import transaction
from ..domain.authorization.policy import DocumentAction
from ..domain.collaboration.lifecycle import Active, Removed
from ..domain.collaboration.roles import CollaboratorPermission, CollaboratorRole
from ..domain.errors import BusinessRuleError, NotFoundError, ThesisFlowError
from ..domain.events import (
    CollaboratorAdded,
    CollaboratorRemoved,
    CollaboratorRoleChanged,
    DomainEvent,
)
from ..documents.service import find_user_by_email, load_document
from ..models.base import utcnow
from ..models.collaborator import DocumentCollaborator
from ..models.document import Document
from ..models.user import User
from ..notifications.ports import NotificationPublisher
from ..notifications.publishers import LoggingNotificationPublisher
from ..observability.logging_config import get_logger
from ..observability.metrics import collaborator_operations_total

logger = get_logger(__name__)


@dataclass(frozen=True)
class CollaboratorRequest:
    """One collaborator to add."""
    user_email: str
    role: CollaboratorRole
    permission: CollaboratorPermission
    message: Optional[str] = None


def _recipients(user_id: UUID, actor_id: UUID) -> Tuple[UUID, ...]:
    return () if user_id == actor_id else (user_id,)


def check_permission_for_role(role: CollaboratorRole, permission: CollaboratorPermission) -> None:
    """Raise BusinessRuleError if ``role`` cannot hold ``permission``."""
    if role == CollaboratorRole.OBSERVER and permission != CollaboratorPermission.READ_ONLY:
        raise BusinessRuleError(
            "Observers can only hold READ_ONLY permission",
            details={"role": role.value, "permission": permission.value},
        )


class CollaboratorService:
    """Service for collaborator registry operations."""

    def __init__(
        self,
        db: Session,
        authorization: Optional[AuthorizationService] = None,
        publisher: Optional[NotificationPublisher] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.authorization = authorization or AuthorizationService()
        self.publisher = publisher or LoggingNotificationPublisher()
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _unit_of_work(self, operation: str) -> Iterator[None]:
        """Transaction plus success/rejected accounting for one operation."""
        try:
            with transaction(self.db):
                yield
        except ThesisFlowError:
            collaborator_operations_total.labels(operation=operation, status="rejected").inc()
            raise
        collaborator_operations_total.labels(operation=operation, status="success").inc()

    @property
    def capacity_limits(self) -> Dict[CollaboratorRole, int]:
        return {
            CollaboratorRole.SECONDARY_STUDENT: self.settings.MAX_SECONDARY_STUDENTS,
            CollaboratorRole.SECONDARY_ADVISOR: self.settings.MAX_SECONDARY_ADVISORS,
        }

    def _check_capacity(self, document: Document, role: CollaboratorRole, freed: int = 0) -> None:
        limit = self.capacity_limits.get(role)
        if limit is None:
            return
        if document.count_active(role) - freed >= limit:
            raise BusinessRuleError(
                f"Maximum of {limit} active {role.value} collaborators reached",
                details={"role": role.value, "limit": limit},
            )

    def _check_global_role(self, user: User, role: CollaboratorRole) -> None:
        required = required_global_role(role)
        if required is not None and not user.has_role(required):
            raise BusinessRuleError(
                f"Role mismatch: {role.value} requires the global {required.value} role",
                details={"email": user.email, "role": role.value, "required_role": required.value},
            )

    def _load_collaborator(self, collaborator_id: UUID) -> DocumentCollaborator:
        """Load an active collaborator record.

        Raises:
            NotFoundError: No such record, or it has been removed
        """
        collaborator = self.db.get(DocumentCollaborator, collaborator_id)
        if collaborator is None or not collaborator.active:
            raise NotFoundError(
                f"Collaborator not found: {collaborator_id}",
                details={"collaborator_id": str(collaborator_id)},
            )
        return collaborator

    def _collaborator_on(self, document: Document, collaborator_id: UUID) -> DocumentCollaborator:
        for collaborator in document.active_collaborators:
            if collaborator.id == collaborator_id:
                return collaborator
        raise NotFoundError(
            f"Collaborator not found: {collaborator_id}",
            details={"collaborator_id": str(collaborator_id), "document_id": str(document.id)},
        )

    def _managed_collaborator(
        self,
        collaborator_id: UUID,
        requester: User,
        document_id: Optional[UUID] = None,
    ) -> DocumentCollaborator:
        collaborator = self._load_collaborator(collaborator_id)
        if document_id is not None and collaborator.document_id != document_id:
            raise NotFoundError(
                f"Collaborator not found: {collaborator_id}",
                details={"collaborator_id": str(collaborator_id), "document_id": str(document_id)},
            )
        self.authorization.require(requester, collaborator.document, DocumentAction.MANAGE_COLLABORATORS)
        return collaborator

    # ------------------------------------------------------------------
    # Add
    # ------------------------------------------------------------------

    def _add(self, document: Document, requester: User, request: CollaboratorRequest) -> CollaboratorAdded:
        target = find_user_by_email(self.db, request.user_email)
        self._check_global_role(target, request.role)
        check_permission_for_role(request.role, request.permission)

        existing = document.find_binding(target.id)
        if existing is not None and existing.active:
            raise BusinessRuleError(
                f"{target.email} is already a collaborator on this document",
                details={"email": target.email, "collaborator_id": str(existing.id)},
            )

        if request.role.is_primary() and document.primary_collaborator(request.role) is not None:
            raise BusinessRuleError(
                f"Document already has a {request.role.value}; use promotion instead",
                details={"role": request.role.value},
            )
        self._check_capacity(document, request.role)

        if existing is not None:
            existing.role = request.role
            existing.permission = request.permission
            existing.added_by_id = requester.id
            existing.added_at = utcnow()
            existing.lifecycle = Active()
            collaborator = existing
            reactivated = True
        else:
            collaborator = DocumentCollaborator(
                user_id=target.id,
                role=request.role,
                permission=request.permission,
                added_by_id=requester.id,
                active=True,
            )
            document.collaborators.append(collaborator)
            reactivated = False
        self.db.flush()

        log_audit_event(
            self.db,
            action="COLLABORATOR_REACTIVATED" if reactivated else "COLLABORATOR_ADDED",
            actor_id=requester.id,
            entity_type="collaborator",
            entity_id=collaborator.id,
            metadata={
                "document_id": str(document.id),
                "user_id": str(target.id),
                "role": request.role.value,
                "permission": request.permission.value,
            },
        )
        return CollaboratorAdded(
            document_id=document.id,
            document_title=document.title,
            actor_id=requester.id,
            recipient_ids=_recipients(target.id, requester.id),
            collaborator_id=collaborator.id,
            user_id=target.id,
            role=request.role,
            reactivated=reactivated,
            message=request.message,
        )

    def add_collaborator(
        self,
        document_id: UUID,
        requester: User,
        user_email: str,
        role: CollaboratorRole,
        permission: CollaboratorPermission,
        message: Optional[str] = None,
    ) -> DocumentCollaborator:
        """Bind a user to a document.

        An inactive (previously removed) binding for the same user is
        reactivated in place, keeping its id.

        Args:
            document_id: Target document
            requester: User performing the change (needs manage-collaborators)
            user_email: Email of the user to add
            role: Collaborator role
            permission: Permission tier
            message: Optional note forwarded to the notification consumer

        Returns:
            DocumentCollaborator: The new or reactivated record

        Raises:
            NotFoundError: Document or user does not exist
            PermissionDeniedError: Requester cannot manage collaborators
            BusinessRuleError: Role mismatch, duplicate, capacity or second primary
            ConflictError: A concurrent request created the same binding
        """
        requests = [CollaboratorRequest(user_email, role, permission, message)]
        return self.add_collaborators(document_id, requester, requests)[0]

    def add_collaborators(
        self,
        document_id: UUID,
        requester: User,
        requests: Sequence[CollaboratorRequest],
    ) -> List[DocumentCollaborator]:
        """Add several collaborators in one unit of work (all or nothing)."""
        events: List[CollaboratorAdded] = []
        with self._unit_of_work("add"):
            document = load_document(self.db, document_id)
            self.authorization.require(requester, document, DocumentAction.MANAGE_COLLABORATORS)
            for request in requests:
                events.append(self._add(document, requester, request))
            collaborator_ids = [event.collaborator_id for event in events]

        for event in events:
            logger.info(
                f"Collaborator {'reactivated' if event.reactivated else 'added'}: {event.role.value}",
                extra={"document_id": event.document_id, "collaborator_id": event.collaborator_id},
            )
        self.publisher.publish_all(events)
        return [self.db.get(DocumentCollaborator, cid) for cid in collaborator_ids]

    # ------------------------------------------------------------------
    # Remove / update
    # ------------------------------------------------------------------

    def remove_collaborator(
        self,
        document_id: UUID,
        requester: User,
        collaborator_id: UUID,
        reason: Optional[str] = None,
    ) -> DocumentCollaborator:
        """Deactivate a collaborator; the row is kept for history.

        Raises:
            NotFoundError: Document or active collaborator does not exist
            PermissionDeniedError: Requester cannot manage collaborators
            BusinessRuleError: The collaborator is a primary
        """
        with self._unit_of_work("remove"):
            document = load_document(self.db, document_id)
            self.authorization.require(requester, document, DocumentAction.MANAGE_COLLABORATORS)
            collaborator = self._collaborator_on(document, collaborator_id)

            if collaborator.role.is_primary():
                raise BusinessRuleError(
                    f"A {collaborator.role.value} cannot be removed; promote another collaborator first",
                    details={"collaborator_id": str(collaborator.id), "role": collaborator.role.value},
                )

            collaborator.lifecycle = Removed(at=utcnow(), reason=reason)
            log_audit_event(
                self.db,
                action="COLLABORATOR_REMOVED",
                actor_id=requester.id,
                entity_type="collaborator",
                entity_id=collaborator.id,
                metadata={
                    "document_id": str(document.id),
                    "user_id": str(collaborator.user_id),
                    "role": collaborator.role.value,
                    "reason": reason,
                },
            )
            event = CollaboratorRemoved(
                document_id=document.id,
                document_title=document.title,
                actor_id=requester.id,
                recipient_ids=_recipients(collaborator.user_id, requester.id),
                collaborator_id=collaborator.id,
                user_id=collaborator.user_id,
                role=collaborator.role,
                reason=reason,
            )

        self.publisher.publish(event)
        return collaborator

    def update_permission(
        self,
        collaborator_id: UUID,
        requester: User,
        permission: CollaboratorPermission,
        document_id: Optional[UUID] = None,
    ) -> DocumentCollaborator:
        """Change a non-primary collaborator's permission tier."""
        with self._unit_of_work("update_permission"):
            collaborator = self._managed_collaborator(collaborator_id, requester, document_id)
            if collaborator.role.is_primary():
                raise BusinessRuleError(
                    "The permission of a primary collaborator cannot be changed",
                    details={"collaborator_id": str(collaborator.id), "role": collaborator.role.value},
                )
            check_permission_for_role(collaborator.role, permission)

            old_permission = collaborator.permission
            if old_permission != permission:
                collaborator.permission = permission
                log_audit_event(
                    self.db,
                    action="COLLABORATOR_PERMISSION_CHANGED",
                    actor_id=requester.id,
                    entity_type="collaborator",
                    entity_id=collaborator.id,
                    metadata={
                        "document_id": str(collaborator.document_id),
                        "old_permission": old_permission.value,
                        "new_permission": permission.value,
                    },
                )
        return collaborator

    def update_role(
        self,
        collaborator_id: UUID,
        requester: User,
        role: CollaboratorRole,
        document_id: Optional[UUID] = None,
    ) -> DocumentCollaborator:
        """Change a non-primary collaborator's role within its family.

        Moving to OBSERVER also drops the permission to READ_ONLY.

        Raises:
            BusinessRuleError: Primary involved, family crossing, role mismatch or capacity
        """
        event: Optional[CollaboratorRoleChanged] = None
        with self._unit_of_work("update_role"):
            collaborator = self._managed_collaborator(collaborator_id, requester, document_id)
            old_role = collaborator.role
            if old_role.is_primary():
                raise BusinessRuleError(
                    "The role of a primary collaborator cannot be changed; promote another collaborator",
                    details={"collaborator_id": str(collaborator.id), "role": old_role.value},
                )
            if role.is_primary():
                raise BusinessRuleError(
                    f"Use promotion to make a collaborator {role.value}",
                    details={"role": role.value},
                )

            if old_role != role:
                old_family = old_role.family_primary()
                new_family = role.family_primary()
                if old_family is not None and new_family is not None and old_family != new_family:
                    raise BusinessRuleError(
                        f"Cannot change role from {old_role.value} to {role.value} across student/advisor families",
                        details={"old_role": old_role.value, "new_role": role.value},
                    )
                self._check_global_role(collaborator.user, role)
                self._check_capacity(collaborator.document, role)

                collaborator.role = role
                if role == CollaboratorRole.OBSERVER:
                    collaborator.permission = CollaboratorPermission.READ_ONLY

                log_audit_event(
                    self.db,
                    action="COLLABORATOR_ROLE_CHANGED",
                    actor_id=requester.id,
                    entity_type="collaborator",
                    entity_id=collaborator.id,
                    metadata={
                        "document_id": str(collaborator.document_id),
                        "old_role": old_role.value,
                        "new_role": role.value,
                    },
                )
                event = self._role_changed(collaborator, requester, old_role)

        if event is not None:
            self.publisher.publish(event)
        return collaborator

    def _role_changed(
        self,
        collaborator: DocumentCollaborator,
        requester: User,
        old_role: CollaboratorRole,
    ) -> CollaboratorRoleChanged:
        return CollaboratorRoleChanged(
            document_id=collaborator.document.id,
            document_title=collaborator.document.title,
            actor_id=requester.id,
            recipient_ids=_recipients(collaborator.user_id, requester.id),
            collaborator_id=collaborator.id,
            user_id=collaborator.user_id,
            old_role=old_role,
            new_role=collaborator.role,
        )

    # ------------------------------------------------------------------
    # Promotion
    # ------------------------------------------------------------------

    def promote_to_primary(
        self,
        collaborator_id: UUID,
        requester: User,
        document_id: Optional[UUID] = None,
    ) -> DocumentCollaborator:
        """Make a collaborator the primary of its family.

        The current primary of that family is demoted to the family's
        secondary role with READ_WRITE; the promoted collaborator gets the
        primary role with FULL_ACCESS. Both changes commit together, or
        neither does.

        Raises:
            NotFoundError: Collaborator does not exist or was removed
            PermissionDeniedError: Requester cannot manage collaborators
            BusinessRuleError: Already primary, not a student/advisor role,
                or the demotion would exceed the secondary capacity
        """
        events: List[DomainEvent] = []
        with self._unit_of_work("promote"):
            collaborator = self._managed_collaborator(collaborator_id, requester, document_id)
            document = collaborator.document
            old_role = collaborator.role

            if old_role.is_primary():
                raise BusinessRuleError(
                    f"Collaborator is already {old_role.value}",
                    details={"collaborator_id": str(collaborator.id)},
                )
            primary_role = old_role.family_primary()
            if primary_role is None:
                raise BusinessRuleError(
                    f"A {old_role.value} cannot be promoted to primary",
                    details={"collaborator_id": str(collaborator.id), "role": old_role.value},
                )

            current = document.primary_collaborator(primary_role)
            if current is not None:
                secondary_role = primary_role.family_secondary()
                self._check_capacity(
                    document, secondary_role, freed=1 if old_role == secondary_role else 0
                )
                current.role = secondary_role
                current.permission = CollaboratorPermission.READ_WRITE
                # The partial unique index must see the demotion before the promotion
                self.db.flush()
                events.append(self._role_changed(current, requester, primary_role))

            collaborator.role = primary_role
            collaborator.permission = CollaboratorPermission.FULL_ACCESS
            self.db.flush()
            events.append(self._role_changed(collaborator, requester, old_role))

            log_audit_event(
                self.db,
                action="COLLABORATOR_PROMOTED",
                actor_id=requester.id,
                entity_type="collaborator",
                entity_id=collaborator.id,
                metadata={
                    "document_id": str(document.id),
                    "old_role": old_role.value,
                    "new_role": primary_role.value,
                    "demoted_collaborator_id": str(current.id) if current else None,
                },
            )

        logger.info(
            f"Collaborator promoted to {primary_role.value}",
            extra={"document_id": document.id, "collaborator_id": collaborator.id},
        )
        self.publisher.publish_all(events)
        return collaborator

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_collaborators(
        self,
        document_id: UUID,
        requester: User,
        include_inactive: bool = False,
    ) -> List[DocumentCollaborator]:
        """Collaborators of a document the requester may view."""
        document = load_document(self.db, document_id)
        self.authorization.require(requester, document, DocumentAction.VIEW)
        if include_inactive:
            return list(document.collaborators)
        return document.active_collaborators
