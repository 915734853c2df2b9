"""Recipient routing for domain events.

Students hear about every status change. Advisors additionally hear about
submissions (they must act) and finalization. The actor is never notified
of their own action.
"""

from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from ..domain.documents.document_status import DocumentStatus
from ..models.document import Document

ADVISOR_NOTIFIED_STATUSES = frozenset({DocumentStatus.SUBMITTED, DocumentStatus.FINALIZED})


def _unique_excluding(user_ids: Iterable[Optional[UUID]], actor_id: UUID) -> Tuple[UUID, ...]:
    seen: List[UUID] = []
    for user_id in user_ids:
        if user_id is not None and user_id != actor_id and user_id not in seen:
            seen.append(user_id)
    return tuple(seen)


def _students(document: Document) -> List[UUID]:
    students = document.student_ids
    if not students and document.legacy_student_id:
        students = [document.legacy_student_id]
    return students


def _advisors(document: Document) -> List[UUID]:
    advisors = document.advisor_ids
    if not advisors and document.legacy_advisor_id:
        advisors = [document.legacy_advisor_id]
    return advisors


def status_change_recipients(
    document: Document,
    new_status: DocumentStatus,
    actor_id: UUID,
) -> Tuple[UUID, ...]:
    """Users to notify when a document moves to ``new_status``.

    Example:
        >>> status_change_recipients(doc, DocumentStatus.REVISION, advisor.id)
        (student_a.id, student_b.id)
    """
    recipients = list(_students(document))
    if new_status in ADVISOR_NOTIFIED_STATUSES:
        recipients.extend(_advisors(document))
    return _unique_excluding(recipients, actor_id)


def document_members(document: Document, actor_id: UUID) -> Tuple[UUID, ...]:
    """Every active collaborator except the actor."""
    return _unique_excluding((c.user_id for c in document.active_collaborators), actor_id)
