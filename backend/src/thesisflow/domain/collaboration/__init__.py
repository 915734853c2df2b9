"""Collaboration primitives: roles, permission tiers and membership lifecycle."""

from .roles import (
    CollaboratorRole,
    CollaboratorPermission,
    STUDENT_ROLES,
    ADVISOR_ROLES,
)
from .lifecycle import Active, Removed, CollaboratorLifecycle

__all__ = [
    "CollaboratorRole",
    "CollaboratorPermission",
    "STUDENT_ROLES",
    "ADVISOR_ROLES",
    "Active",
    "Removed",
    "CollaboratorLifecycle",
]
