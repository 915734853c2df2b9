"""Domain events emitted by the collaboration and lifecycle core.

Events are plain facts. They carry ids and values only (never ORM
instances) so consumers can handle them after the unit of work has been
committed. Delivery (email, WebSocket) is the consumer's job; the core
only decides who is affected.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import ClassVar, Optional, Tuple
from uuid import UUID

from .collaboration.roles import CollaboratorRole
from .documents.document_status import DocumentStatus


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    event_type: ClassVar[str] = "DOMAIN_EVENT"

    document_id: UUID
    document_title: str
    actor_id: UUID
    recipient_ids: Tuple[UUID, ...] = ()
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True, kw_only=True)
class DocumentCreated(DomainEvent):
    event_type: ClassVar[str] = "DOCUMENT_CREATED"


@dataclass(frozen=True, kw_only=True)
class DocumentStatusChanged(DomainEvent):
    event_type: ClassVar[str] = "DOCUMENT_STATUS_CHANGED"

    old_status: DocumentStatus
    new_status: DocumentStatus
    reason: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class CollaboratorAdded(DomainEvent):
    event_type: ClassVar[str] = "COLLABORATOR_ADDED"

    collaborator_id: UUID
    user_id: UUID
    role: CollaboratorRole
    reactivated: bool = False
    message: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class CollaboratorRemoved(DomainEvent):
    event_type: ClassVar[str] = "COLLABORATOR_REMOVED"

    collaborator_id: UUID
    user_id: UUID
    role: CollaboratorRole
    reason: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class CollaboratorRoleChanged(DomainEvent):
    event_type: ClassVar[str] = "COLLABORATOR_ROLE_CHANGED"

    collaborator_id: UUID
    user_id: UUID
    old_role: CollaboratorRole
    new_role: CollaboratorRole
