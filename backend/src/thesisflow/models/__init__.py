"""SQLAlchemy Models for ThesisFlow"""

from .base import Base
from .user import User
from .audit_log import AuditLog
from .document import Document
from .collaborator import DocumentCollaborator

__all__ = [
    "Base",
    "User",
    "AuditLog",
    "Document",
    "DocumentCollaborator",
]
