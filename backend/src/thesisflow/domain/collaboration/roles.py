"""Collaborator roles and permission levels.

A collaborator binds a user to a document with two independent attributes:

- CollaboratorRole: the functional position on the document. It gates
  submit/approve/manage actions regardless of the permission tier.
- CollaboratorPermission: a coarse capability tier, ordered
  READ_ONLY < READ_COMMENT / READ_WRITE < FULL_ACCESS.

Role capability matrix:
┌───────────────────┬─────────┬─────────┬─────────┬──────┬────────┬────────┬─────────┐
│ Role              │ student │ advisor │ primary │ edit │ manage │ submit │ approve │
├───────────────────┼─────────┼─────────┼─────────┼──────┼────────┼────────┼─────────┤
│ PRIMARY_STUDENT   │    ✓    │         │    ✓    │  ✓   │   ✓    │   ✓    │         │
│ SECONDARY_STUDENT │    ✓    │         │         │  ✓   │        │   ✓    │         │
│ CO_STUDENT        │    ✓    │         │         │  ✓   │        │   ✓    │         │
│ PRIMARY_ADVISOR   │         │    ✓    │    ✓    │  ✓   │   ✓    │        │    ✓    │
│ SECONDARY_ADVISOR │         │    ✓    │         │  ✓   │        │        │    ✓    │
│ CO_ADVISOR        │         │    ✓    │         │  ✓   │        │        │    ✓    │
│ EXTERNAL_ADVISOR  │         │    ✓    │         │  ✓   │        │        │    ✓    │
│ EXAMINER          │         │         │         │      │        │        │         │
│ REVIEWER          │         │         │         │      │        │        │         │
│ OBSERVER          │         │         │         │      │        │        │         │
└───────────────────┴─────────┴─────────┴─────────┴──────┴────────┴────────┴─────────┘
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional


class CollaboratorRole(str, Enum):
    """Per-document collaborator role.

    Values are stored as TEXT in the database and must match exactly.
    """
    PRIMARY_STUDENT = "PRIMARY_STUDENT"
    SECONDARY_STUDENT = "SECONDARY_STUDENT"
    CO_STUDENT = "CO_STUDENT"
    PRIMARY_ADVISOR = "PRIMARY_ADVISOR"
    SECONDARY_ADVISOR = "SECONDARY_ADVISOR"
    CO_ADVISOR = "CO_ADVISOR"
    EXTERNAL_ADVISOR = "EXTERNAL_ADVISOR"
    EXAMINER = "EXAMINER"
    REVIEWER = "REVIEWER"
    OBSERVER = "OBSERVER"

    @property
    def display_name(self) -> str:
        return ROLE_LABELS[self][0]

    @property
    def description(self) -> str:
        return ROLE_LABELS[self][1]

    def is_student(self) -> bool:
        return self in STUDENT_ROLES

    def is_advisor(self) -> bool:
        return self in ADVISOR_ROLES

    def is_primary(self) -> bool:
        return self in (CollaboratorRole.PRIMARY_STUDENT, CollaboratorRole.PRIMARY_ADVISOR)

    def can_edit(self) -> bool:
        return self not in READ_ONLY_ROLES

    def can_manage_collaborators(self) -> bool:
        return self.is_primary()

    def can_submit_document(self) -> bool:
        return self.is_student()

    def can_approve_document(self) -> bool:
        return self.is_advisor()

    def family_primary(self) -> Optional["CollaboratorRole"]:
        """Primary role of this role's family, or None for non-family roles."""
        if self.is_student():
            return CollaboratorRole.PRIMARY_STUDENT
        if self.is_advisor():
            return CollaboratorRole.PRIMARY_ADVISOR
        return None

    def family_secondary(self) -> Optional["CollaboratorRole"]:
        """Role a demoted primary of this family falls back to."""
        if self.is_student():
            return CollaboratorRole.SECONDARY_STUDENT
        if self.is_advisor():
            return CollaboratorRole.SECONDARY_ADVISOR
        return None


STUDENT_ROLES: FrozenSet[CollaboratorRole] = frozenset({
    CollaboratorRole.PRIMARY_STUDENT,
    CollaboratorRole.SECONDARY_STUDENT,
    CollaboratorRole.CO_STUDENT,
})

ADVISOR_ROLES: FrozenSet[CollaboratorRole] = frozenset({
    CollaboratorRole.PRIMARY_ADVISOR,
    CollaboratorRole.SECONDARY_ADVISOR,
    CollaboratorRole.CO_ADVISOR,
    CollaboratorRole.EXTERNAL_ADVISOR,
})

READ_ONLY_ROLES: FrozenSet[CollaboratorRole] = frozenset({
    CollaboratorRole.EXAMINER,
    CollaboratorRole.REVIEWER,
    CollaboratorRole.OBSERVER,
})

ROLE_LABELS: Dict[CollaboratorRole, tuple] = {
    CollaboratorRole.PRIMARY_STUDENT: ("Primary student", "Main author of the thesis"),
    CollaboratorRole.SECONDARY_STUDENT: ("Collaborating student", "Student contributing to the work"),
    CollaboratorRole.CO_STUDENT: ("Co-author", "Student with a significant share of authorship"),
    CollaboratorRole.PRIMARY_ADVISOR: ("Primary advisor", "Advisor responsible for the thesis"),
    CollaboratorRole.SECONDARY_ADVISOR: ("Collaborating advisor", "Assisting advisor"),
    CollaboratorRole.CO_ADVISOR: ("Co-advisor", "Officially appointed co-advisor"),
    CollaboratorRole.EXTERNAL_ADVISOR: ("External advisor", "Advisor from another institution"),
    CollaboratorRole.EXAMINER: ("Examiner", "Member of the examination board"),
    CollaboratorRole.REVIEWER: ("Reviewer", "Invited reviewer"),
    CollaboratorRole.OBSERVER: ("Observer", "Read-only access"),
}


class CollaboratorPermission(str, Enum):
    """Capability tier of a collaborator.

    READ_COMMENT and READ_WRITE share a tier: neither implies the other's
    extra capability beyond reading, but both sit above READ_ONLY and
    below FULL_ACCESS.
    """
    READ_ONLY = "READ_ONLY"
    READ_COMMENT = "READ_COMMENT"
    READ_WRITE = "READ_WRITE"
    FULL_ACCESS = "FULL_ACCESS"

    @property
    def rank(self) -> int:
        return PERMISSION_RANK[self]

    @property
    def display_name(self) -> str:
        return PERMISSION_LABELS[self]

    def can_read(self) -> bool:
        return True

    def can_comment(self) -> bool:
        return self != CollaboratorPermission.READ_ONLY

    def can_write(self) -> bool:
        return self in (CollaboratorPermission.READ_WRITE, CollaboratorPermission.FULL_ACCESS)

    def can_delete_comments(self) -> bool:
        return self.can_write()

    def can_manage_collaborators(self) -> bool:
        return self == CollaboratorPermission.FULL_ACCESS

    def can_change_status(self) -> bool:
        return self == CollaboratorPermission.FULL_ACCESS


PERMISSION_RANK: Dict[CollaboratorPermission, int] = {
    CollaboratorPermission.READ_ONLY: 0,
    CollaboratorPermission.READ_COMMENT: 1,
    CollaboratorPermission.READ_WRITE: 1,
    CollaboratorPermission.FULL_ACCESS: 2,
}

PERMISSION_LABELS: Dict[CollaboratorPermission, str] = {
    CollaboratorPermission.READ_ONLY: "Read only",
    CollaboratorPermission.READ_COMMENT: "Read and comment",
    CollaboratorPermission.READ_WRITE: "Read and write",
    CollaboratorPermission.FULL_ACCESS: "Full access",
}
