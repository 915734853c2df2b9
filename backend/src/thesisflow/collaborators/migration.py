"""Backfill primary collaborators for legacy documents.

Documents created before the collaborator registry carry a single
``legacy_student_id`` / ``legacy_advisor_id``. For every such document
that has no active primary of a family, the legacy user becomes that
family's primary collaborator with FULL_ACCESS:

- an existing row for the user (removed or secondary) is reactivated
  and upgraded in place
- otherwise a new row is created

Families that already have an active primary are skipped, so running the
migration again changes nothing.
"""

from dataclasses import dataclass
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from ..audit.service import log_audit_event
from ..database import transaction
from ..domain.collaboration.lifecycle import Active
from ..domain.collaboration.roles import CollaboratorPermission, CollaboratorRole
from ..models.collaborator import DocumentCollaborator
from ..models.document import Document
from ..observability.logging_config import get_logger
from ..observability.metrics import collaborators_migrated_total

logger = get_logger(__name__)


@dataclass
class MigrationReport:
    """Outcome of one backfill run."""
    documents_scanned: int = 0
    documents_updated: int = 0
    students_created: int = 0
    advisors_created: int = 0
    rows_reactivated: int = 0

    @property
    def total_created(self) -> int:
        return self.students_created + self.advisors_created

    def to_dict(self):
        return {
            "documents_scanned": self.documents_scanned,
            "documents_updated": self.documents_updated,
            "students_created": self.students_created,
            "advisors_created": self.advisors_created,
            "rows_reactivated": self.rows_reactivated,
        }


def _ensure_primary(document: Document, user_id: Optional[UUID], role: CollaboratorRole) -> Tuple[bool, bool]:
    """Make ``user_id`` the active ``role`` holder unless one exists.

    Returns:
        (changed, reused_existing_row)
    """
    if user_id is None or document.primary_collaborator(role) is not None:
        return False, False

    existing = document.find_binding(user_id)
    if existing is not None and existing.active and existing.role.is_primary():
        # Same user is the other family's primary; leave it alone
        logger.warning(
            f"Legacy {role.value} already holds {existing.role.value}, skipping",
            extra={"document_id": document.id, "user_id": user_id},
        )
        return False, False
    if existing is not None:
        existing.role = role
        existing.permission = CollaboratorPermission.FULL_ACCESS
        existing.lifecycle = Active()
        return True, True

    document.collaborators.append(DocumentCollaborator(
        user_id=user_id,
        role=role,
        permission=CollaboratorPermission.FULL_ACCESS,
        added_by_id=None,
        active=True,
    ))
    return True, False


def migrate_existing_documents(db: Session, actor_id: Optional[UUID] = None) -> MigrationReport:
    """Synthesize missing primary collaborators from legacy fields.

    Runs as a single unit of work. Idempotent.

    Args:
        db: Database session
        actor_id: Admin who triggered the run (None when run from a script)

    Returns:
        MigrationReport: Counts for this run
    """
    report = MigrationReport()

    with transaction(db):
        documents = (
            db.query(Document)
            .options(selectinload(Document.collaborators))
            .filter(or_(
                Document.legacy_student_id.isnot(None),
                Document.legacy_advisor_id.isnot(None),
            ))
            .order_by(Document.created_at)
            .all()
        )

        for document in documents:
            report.documents_scanned += 1

            student_changed, student_reused = _ensure_primary(
                document, document.legacy_student_id, CollaboratorRole.PRIMARY_STUDENT
            )
            advisor_changed, advisor_reused = _ensure_primary(
                document, document.legacy_advisor_id, CollaboratorRole.PRIMARY_ADVISOR
            )
            db.flush()

            if student_changed:
                report.students_created += 1
                collaborators_migrated_total.labels(role=CollaboratorRole.PRIMARY_STUDENT.value).inc()
            if advisor_changed:
                report.advisors_created += 1
                collaborators_migrated_total.labels(role=CollaboratorRole.PRIMARY_ADVISOR.value).inc()
            report.rows_reactivated += int(student_reused) + int(advisor_reused)
            if student_changed or advisor_changed:
                report.documents_updated += 1

        if report.documents_updated:
            log_audit_event(
                db,
                action="COLLABORATORS_MIGRATED",
                actor_id=actor_id,
                entity_type="document",
                metadata=report.to_dict(),
            )

    logger.info(
        f"Collaborator migration finished: {report.documents_updated} of "
        f"{report.documents_scanned} documents updated",
    )
    return report
