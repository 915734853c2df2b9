"""Document SQLAlchemy model

Document represents a thesis/monograph moving through the approval
workflow. Its collaborator records are authoritative for who may do what;
the legacy single student/advisor columns are kept only as a read fallback
and as the source for the collaborator backfill.
"""

import uuid
from typing import List, Optional
from uuid import UUID

from sqlalchemy import Column, Text, DateTime, ForeignKey, Index, Enum as SQLEnum, Uuid
from sqlalchemy.orm import relationship

from .base import Base, utcnow
from ..domain.collaboration.roles import CollaboratorRole
from ..domain.documents.document_status import DocumentStatus


class Document(Base):
    """Document model with its collaborator set and workflow status."""
    __tablename__ = "document"
    __table_args__ = (
        Index("ix_document_status", "status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(
        SQLEnum(DocumentStatus, name="document_status", native_enum=False, length=20),
        nullable=False,
        default=DocumentStatus.DRAFT,
        server_default=DocumentStatus.DRAFT.value,
    )
    # Legacy single-student/advisor fields (pre-collaborator documents)
    legacy_student_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    legacy_advisor_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    collaborators = relationship(
        "DocumentCollaborator",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="DocumentCollaborator.added_at",
    )
    legacy_student = relationship("User", foreign_keys=[legacy_student_id])
    legacy_advisor = relationship("User", foreign_keys=[legacy_advisor_id])

    # ------------------------------------------------------------------
    # Collaborator lookups
    # ------------------------------------------------------------------

    @property
    def active_collaborators(self) -> List["DocumentCollaborator"]:
        return [c for c in self.collaborators if c.active]

    def get_collaborator(self, user_id: UUID) -> Optional["DocumentCollaborator"]:
        """Active collaborator binding for a user, if any."""
        for collaborator in self.active_collaborators:
            if collaborator.user_id == user_id:
                return collaborator
        return None

    def find_binding(self, user_id: UUID) -> Optional["DocumentCollaborator"]:
        """Binding for a user regardless of lifecycle state."""
        for collaborator in self.collaborators:
            if collaborator.user_id == user_id:
                return collaborator
        return None

    def collaborators_with_role(self, role: CollaboratorRole) -> List["DocumentCollaborator"]:
        return [c for c in self.active_collaborators if c.role == role]

    def count_active(self, role: CollaboratorRole) -> int:
        return len(self.collaborators_with_role(role))

    def primary_collaborator(self, role: CollaboratorRole) -> Optional["DocumentCollaborator"]:
        holders = self.collaborators_with_role(role)
        return holders[0] if holders else None

    def has_primary_student(self) -> bool:
        return self.primary_collaborator(CollaboratorRole.PRIMARY_STUDENT) is not None

    def has_primary_advisor(self) -> bool:
        return self.primary_collaborator(CollaboratorRole.PRIMARY_ADVISOR) is not None

    @property
    def primary_student_id(self) -> Optional[UUID]:
        """Primary student, falling back to the legacy field."""
        primary = self.primary_collaborator(CollaboratorRole.PRIMARY_STUDENT)
        return primary.user_id if primary else self.legacy_student_id

    @property
    def primary_advisor_id(self) -> Optional[UUID]:
        """Primary advisor, falling back to the legacy field."""
        primary = self.primary_collaborator(CollaboratorRole.PRIMARY_ADVISOR)
        return primary.user_id if primary else self.legacy_advisor_id

    @property
    def student_ids(self) -> List[UUID]:
        return [c.user_id for c in self.active_collaborators if c.role.is_student()]

    @property
    def advisor_ids(self) -> List[UUID]:
        return [c.user_id for c in self.active_collaborators if c.role.is_advisor()]

    def to_dict(self):
        """Convert document to dictionary representation"""
        return {
            "id": str(self.id),
            "title": self.title,
            "description": self.description,
            "status": self.status.value if self.status else None,
            "primary_student_id": str(self.primary_student_id) if self.primary_student_id else None,
            "primary_advisor_id": str(self.primary_advisor_id) if self.primary_advisor_id else None,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "rejected_at": self.rejected_at.isoformat() if self.rejected_at else None,
            "rejection_reason": self.rejection_reason,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
