"""Collaborator membership lifecycle.

A collaborator record is never hard-deleted. It is either Active or
Removed, and a Removed record keeps when and why it was removed so the
history survives for audit.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union


@dataclass(frozen=True)
class Active:
    """Membership is in effect."""

    @property
    def is_active(self) -> bool:
        return True


@dataclass(frozen=True)
class Removed:
    """Membership was revoked; the row is kept."""
    at: datetime
    reason: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return False


CollaboratorLifecycle = Union[Active, Removed]
