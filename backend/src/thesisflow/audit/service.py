"""Audit logging service for collaboration and workflow events.

This service provides a centralized interface for creating immutable audit log
entries for successful mutations. The entry joins the caller's unit of work,
so it is committed together with the change it describes.

Audit Events:
- DOCUMENT_CREATED, DOCUMENT_UPDATED, DOCUMENT_DELETED
- DOCUMENT_STATUS_CHANGED
- COLLABORATOR_ADDED, COLLABORATOR_REACTIVATED, COLLABORATOR_REMOVED
- COLLABORATOR_PERMISSION_CHANGED, COLLABORATOR_ROLE_CHANGED
- COLLABORATOR_PROMOTED
- COLLABORATORS_MIGRATED
"""

from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..models.audit_log import AuditLog


def log_audit_event(
    db: Session,
    action: str,
    actor_id: Optional[UUID] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> AuditLog:
    """Create an audit log entry.

    All parameters are stored as-is. This function does not validate action
    names or entity types.

    Args:
        db: Database session
        action: Event action (e.g., "COLLABORATOR_ADDED")
        actor_id: User who performed the action (None for system events)
        entity_type: Type of entity affected (e.g., "document", "collaborator")
        entity_id: ID of affected entity
        metadata: Additional context as JSON (e.g., {"old_role": "CO_STUDENT", "new_role": "PRIMARY_STUDENT"})
        ip_address: Client IP address
        user_agent: Client User-Agent header

    Returns:
        AuditLog: The created audit log entry

    Example:
        log_audit_event(
            db=db,
            action="COLLABORATOR_REMOVED",
            actor_id=requester.id,
            entity_type="collaborator",
            entity_id=collaborator.id,
            metadata={"document_id": str(document.id), "reason": "left the group"},
        )
    """
    audit_entry = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata_json=metadata,
        ip_address=ip_address,
        user_agent=user_agent,
    )

    db.add(audit_entry)
    db.flush()  # Get ID without committing transaction

    return audit_entry
