"""Document service - creation, lookup, editing and deletion.

Every operation runs as one unit of work (``database.transaction``) and
publishes its domain events only after the commit succeeded.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from ..audit.service import log_audit_event
from ..auth.roles import UserRole
from ..authorization.service import AuthorizationService
from ..database import transaction
from ..domain.authorization.policy import DocumentAction
from ..domain.collaboration.roles import CollaboratorPermission, CollaboratorRole
from ..domain.documents.document_status import DocumentStatus
from ..domain.errors import BusinessRuleError, NotFoundError, PermissionDeniedError
from ..domain.events import DocumentCreated
from ..editing.presence import EditingPresenceTracker
from ..models.collaborator import DocumentCollaborator
from ..models.document import Document
from ..models.user import User
from ..notifications.ports import NotificationPublisher
from ..notifications.publishers import LoggingNotificationPublisher
from ..notifications.recipients import document_members
from ..observability.logging_config import get_logger

logger = get_logger(__name__)


def load_document(db: Session, document_id: UUID) -> Document:
    """Load a document with its active and inactive collaborators.

    Raises:
        NotFoundError: If no document has this id
    """
    document = (
        db.query(Document)
        .options(selectinload(Document.collaborators))
        .filter(Document.id == document_id)
        .first()
    )
    if document is None:
        raise NotFoundError(
            f"Document not found: {document_id}",
            details={"document_id": str(document_id)},
        )
    return document


def find_user_by_email(db: Session, email: str) -> User:
    """Look up a user by (case-insensitive) email.

    Raises:
        NotFoundError: If no user has this email
    """
    normalized = (email or "").strip().lower()
    user = db.query(User).filter(User.email == normalized).first()
    if user is None:
        raise NotFoundError(f"User not found: {normalized}", details={"email": normalized})
    return user


class DocumentService:
    """Service for document operations."""

    def __init__(
        self,
        db: Session,
        authorization: Optional[AuthorizationService] = None,
        publisher: Optional[NotificationPublisher] = None,
        presence: Optional[EditingPresenceTracker] = None,
    ):
        self.db = db
        self.authorization = authorization or AuthorizationService()
        self.publisher = publisher or LoggingNotificationPublisher()
        self.presence = presence

    def create_document(
        self,
        creator: User,
        title: str,
        description: Optional[str] = None,
        student_email: Optional[str] = None,
        advisor_email: Optional[str] = None,
    ) -> Document:
        """Create a DRAFT document with its primary collaborators.

        A student creates a document for themselves. An administrator
        creates one on behalf of the student named by ``student_email``.
        The primary student (and the primary advisor, when given) get
        FULL_ACCESS.

        Raises:
            PermissionDeniedError: Creator is neither STUDENT nor ADMIN
            BusinessRuleError: Missing student for an admin, or global role mismatch
            NotFoundError: A named user does not exist
        """
        with transaction(self.db):
            if creator.is_admin:
                if not student_email:
                    raise BusinessRuleError(
                        "student_email is required when an administrator creates a document"
                    )
                student = find_user_by_email(self.db, student_email)
            elif creator.has_role(UserRole.STUDENT):
                student = creator
            else:
                raise PermissionDeniedError("Only students or administrators can create documents")

            if not student.has_role(UserRole.STUDENT):
                raise BusinessRuleError(
                    f"Role mismatch: {student.email} does not hold the STUDENT role",
                    details={"email": student.email, "required_role": UserRole.STUDENT.value},
                )

            advisor = None
            if advisor_email:
                advisor = find_user_by_email(self.db, advisor_email)
                if not advisor.has_role(UserRole.ADVISOR):
                    raise BusinessRuleError(
                        f"Role mismatch: {advisor.email} does not hold the ADVISOR role",
                        details={"email": advisor.email, "required_role": UserRole.ADVISOR.value},
                    )

            document = Document(
                title=title.strip(),
                description=description,
                status=DocumentStatus.DRAFT,
            )
            document.collaborators.append(DocumentCollaborator(
                user_id=student.id,
                role=CollaboratorRole.PRIMARY_STUDENT,
                permission=CollaboratorPermission.FULL_ACCESS,
                added_by_id=creator.id,
                active=True,
            ))
            if advisor is not None:
                document.collaborators.append(DocumentCollaborator(
                    user_id=advisor.id,
                    role=CollaboratorRole.PRIMARY_ADVISOR,
                    permission=CollaboratorPermission.FULL_ACCESS,
                    added_by_id=creator.id,
                    active=True,
                ))
            self.db.add(document)
            self.db.flush()

            log_audit_event(
                self.db,
                action="DOCUMENT_CREATED",
                actor_id=creator.id,
                entity_type="document",
                entity_id=document.id,
                metadata={
                    "title": document.title,
                    "student_id": str(student.id),
                    "advisor_id": str(advisor.id) if advisor else None,
                },
            )
            event = DocumentCreated(
                document_id=document.id,
                document_title=document.title,
                actor_id=creator.id,
                recipient_ids=document_members(document, creator.id),
            )

        logger.info(
            f"Document created: {event.document_title}",
            extra={"document_id": event.document_id, "actor_id": creator.id},
        )
        self.publisher.publish(event)
        return document

    def get_document(self, document_id: UUID, actor: User) -> Document:
        """Load a document the actor may view.

        Raises:
            NotFoundError: Document does not exist
            PermissionDeniedError: Actor has no access
        """
        document = load_document(self.db, document_id)
        self.authorization.require(actor, document, DocumentAction.VIEW)
        return document

    def list_documents_for_user(
        self,
        actor: User,
        status: Optional[DocumentStatus] = None,
    ) -> List[Document]:
        """Documents the actor collaborates on; administrators see all."""
        query = self.db.query(Document).options(selectinload(Document.collaborators))

        if not actor.is_admin:
            memberships = select(DocumentCollaborator.document_id).where(
                DocumentCollaborator.user_id == actor.id,
                DocumentCollaborator.active.is_(True),
            )
            query = query.filter(or_(
                Document.id.in_(memberships),
                Document.legacy_student_id == actor.id,
                Document.legacy_advisor_id == actor.id,
            ))

        if status is not None:
            query = query.filter(Document.status == status)

        documents = query.order_by(Document.created_at.desc()).all()
        if actor.is_admin:
            return documents
        # Legacy matches only count while no primary of that family is recorded
        return [d for d in documents if self.authorization.binding_for(actor, d) is not None]

    def update_document(
        self,
        document_id: UUID,
        actor: User,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Document:
        """Update title/description.

        Raises:
            PermissionDeniedError: Actor cannot edit
            BusinessRuleError: Another user is editing the document right now
        """
        with transaction(self.db):
            document = load_document(self.db, document_id)
            self.authorization.require(actor, document, DocumentAction.EDIT)

            if self.presence is not None and self.presence.has_other_editors(document.id, actor.id):
                raise BusinessRuleError(
                    "Document is currently being edited by another user",
                    details={"editors": [str(u) for u in self.presence.editors(document.id)]},
                )

            changes = {}
            if title is not None and title.strip() != document.title:
                changes["title"] = {"old": document.title, "new": title.strip()}
                document.title = title.strip()
            if description is not None and description != document.description:
                changes["description"] = {"old": document.description, "new": description}
                document.description = description

            if changes:
                log_audit_event(
                    self.db,
                    action="DOCUMENT_UPDATED",
                    actor_id=actor.id,
                    entity_type="document",
                    entity_id=document.id,
                    metadata=changes,
                )
        return document

    def delete_document(self, document_id: UUID, actor: User) -> None:
        """Delete a document and its collaborator records.

        Only DRAFT documents can be deleted, unless the actor is an admin.

        Raises:
            PermissionDeniedError: Actor is not the primary student (or admin)
            BusinessRuleError: Document is past DRAFT
        """
        with transaction(self.db):
            document = load_document(self.db, document_id)
            self.authorization.require(actor, document, DocumentAction.DELETE)

            if document.status != DocumentStatus.DRAFT and not actor.is_admin:
                raise BusinessRuleError(
                    f"Only draft documents can be deleted (current status: {document.status.value})",
                    details={"status": document.status.value},
                )

            log_audit_event(
                self.db,
                action="DOCUMENT_DELETED",
                actor_id=actor.id,
                entity_type="document",
                entity_id=document.id,
                metadata={"title": document.title, "status": document.status.value},
            )
            self.db.delete(document)

        logger.info(
            "Document deleted",
            extra={"document_id": document_id, "actor_id": actor.id},
        )
