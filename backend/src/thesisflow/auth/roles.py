"""Global user roles for ThesisFlow.

Global roles are coarse account classifications. They decide which
per-document collaborator roles a user may be bound to, and whether the
user bypasses collaborator checks entirely (ADMIN).

┌──────────────────────────────┬───────┬─────────┬─────────┐
│ Capability                   │ ADMIN │ ADVISOR │ STUDENT │
├──────────────────────────────┼───────┼─────────┼─────────┤
│ Bypass collaborator checks   │   ✓   │         │         │
│ Bound to student-family role │       │         │    ✓    │
│ Bound to advisor-family role │       │    ✓    │         │
│ Create documents             │   ✓   │         │    ✓    │
│ Run collaborator backfill    │   ✓   │         │         │
└──────────────────────────────┴───────┴─────────┴─────────┘
"""

from enum import Enum
from typing import Optional

from ..domain.collaboration.roles import CollaboratorRole


class UserRole(str, Enum):
    """User roles in ThesisFlow.

    Values are stored as TEXT in the database and must match exactly.
    """
    STUDENT = "STUDENT"
    ADVISOR = "ADVISOR"
    ADMIN = "ADMIN"


def required_global_role(role: CollaboratorRole) -> Optional[UserRole]:
    """Global role a user must hold to be bound to a collaborator role.

    Examiner, reviewer and observer carry no family requirement.

    Examples:
        >>> required_global_role(CollaboratorRole.CO_STUDENT)
        <UserRole.STUDENT: 'STUDENT'>
        >>> required_global_role(CollaboratorRole.REVIEWER) is None
        True
    """
    if role.is_student():
        return UserRole.STUDENT
    if role.is_advisor():
        return UserRole.ADVISOR
    return None
