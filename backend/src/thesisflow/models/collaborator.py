"""DocumentCollaborator SQLAlchemy model"""

import uuid

from sqlalchemy import (
    Column, Text, Boolean, DateTime, ForeignKey, Index, UniqueConstraint, Enum as SQLEnum, Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import text

from .base import Base, utcnow
from ..domain.collaboration.lifecycle import Active, CollaboratorLifecycle, Removed
from ..domain.collaboration.roles import CollaboratorPermission, CollaboratorRole

_ACTIVE_PRIMARY = text("active AND role IN ('PRIMARY_STUDENT', 'PRIMARY_ADVISOR')")


class DocumentCollaborator(Base):
    """Binding of a user to a document with a role and permission.

    Rows are never deleted. Removal flips the lifecycle to Removed and a
    later re-add reactivates the same row, so (document_id, user_id) is
    unique across the whole table. The partial index keeps at most one
    active primary per family at the storage boundary.
    """
    __tablename__ = "document_collaborator"
    __table_args__ = (
        UniqueConstraint("document_id", "user_id", name="uq_document_collaborator_document_user"),
        Index(
            "uq_document_collaborator_active_primary",
            "document_id",
            "role",
            unique=True,
            postgresql_where=_ACTIVE_PRIMARY,
            sqlite_where=_ACTIVE_PRIMARY,
        ),
        Index("ix_document_collaborator_user_id", "user_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id = Column(Uuid, ForeignKey("document.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    role = Column(
        SQLEnum(CollaboratorRole, name="collaborator_role", native_enum=False, length=32),
        nullable=False,
    )
    permission = Column(
        SQLEnum(CollaboratorPermission, name="collaborator_permission", native_enum=False, length=32),
        nullable=False,
    )
    active = Column(Boolean, nullable=False, default=True)
    removed_at = Column(DateTime(timezone=True), nullable=True)
    removal_reason = Column(Text, nullable=True)
    added_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    added_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    document = relationship("Document", back_populates="collaborators")
    user = relationship("User", foreign_keys=[user_id])
    added_by = relationship("User", foreign_keys=[added_by_id])

    @property
    def lifecycle(self) -> CollaboratorLifecycle:
        if self.active:
            return Active()
        return Removed(at=self.removed_at, reason=self.removal_reason)

    @lifecycle.setter
    def lifecycle(self, state: CollaboratorLifecycle) -> None:
        if isinstance(state, Removed):
            self.active = False
            self.removed_at = state.at
            self.removal_reason = state.reason
        else:
            self.active = True
            self.removed_at = None
            self.removal_reason = None

    def to_dict(self):
        """Convert collaborator to dictionary representation"""
        return {
            "id": str(self.id),
            "document_id": str(self.document_id),
            "user_id": str(self.user_id),
            "role": self.role.value,
            "permission": self.permission.value,
            "active": self.active,
            "removed_at": self.removed_at.isoformat() if self.removed_at else None,
            "removal_reason": self.removal_reason,
            "added_by_id": str(self.added_by_id) if self.added_by_id else None,
            "added_at": self.added_at.isoformat() if self.added_at else None,
        }
