"""User SQLAlchemy model"""

import re
import uuid

from sqlalchemy import Column, Text, DateTime, CheckConstraint, UniqueConstraint, Uuid
from sqlalchemy.orm import validates

from .base import Base, PortableJSONB, utcnow


class User(Base):
    """User model representing authenticated accounts.

    Global roles (STUDENT, ADVISOR, ADMIN) are coarse account classifications.
    They are distinct from the per-document collaborator roles stored on
    DocumentCollaborator.
    """
    __tablename__ = "user"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    roles = Column(PortableJSONB, nullable=False, default=list)
    status = Column(Text, nullable=False, default="ACTIVE", server_default="ACTIVE")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(
            "status IN ('ACTIVE', 'DISABLED')",
            name='ck_user_status'
        ),
        UniqueConstraint('email', name='uq_user_email'),
    )

    @validates('email')
    def validate_email(self, key, value):
        """Basic email format validation"""
        if not re.match(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$', value):
            raise ValueError("Invalid email format")
        return value.lower()

    @validates('roles')
    def validate_roles(self, key, value):
        """Store roles as a sorted list of unique upper-case names"""
        return sorted({str(getattr(role, "value", role)).upper() for role in (value or [])})

    def has_role(self, role) -> bool:
        """Check whether the user holds a global role (UserRole or its name)."""
        name = getattr(role, "value", role)
        return name in (self.roles or [])

    @property
    def is_admin(self) -> bool:
        return self.has_role("ADMIN")

    def to_dict(self):
        """Convert user to dictionary representation"""
        return {
            "id": str(self.id),
            "email": self.email,
            "name": self.name,
            "roles": list(self.roles or []),
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
