"""Collaborator-based authorization policy.

Pure decision functions over an actor's active collaborator binding on a
document. No database access, no logging: the AuthorizationService feeds
these functions and reports every decision to the audit consumer.

Decision table:
┌─────────────────────────┬──────────────────────────────────────────────┬────────────────┐
│ Action                  │ Collaborator rule                            │ Admin bypasses │
├─────────────────────────┼──────────────────────────────────────────────┼────────────────┤
│ VIEW                    │ any active binding                           │       ✓        │
│ EDIT                    │ permission.can_write AND role.can_edit       │       ✓        │
│ MANAGE_COLLABORATORS    │ permission.can_manage OR role.can_manage     │       ✓        │
│ SUBMIT                  │ role.can_submit AND permission.can_write     │                │
│ APPROVE                 │ role.can_approve (permission irrelevant)     │                │
│ DELETE                  │ role is exactly PRIMARY_STUDENT              │       ✓        │
└─────────────────────────┴──────────────────────────────────────────────┴────────────────┘
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Protocol

from ..collaboration.roles import CollaboratorPermission, CollaboratorRole


class Binding(Protocol):
    """Anything carrying a collaborator role and permission."""
    role: CollaboratorRole
    permission: CollaboratorPermission


@dataclass(frozen=True)
class Grant:
    """Plain role/permission pair, handy for previews and tests."""
    role: CollaboratorRole
    permission: CollaboratorPermission


class DocumentAction(str, Enum):
    """Actions the authorization engine decides on."""
    VIEW = "VIEW"
    EDIT = "EDIT"
    MANAGE_COLLABORATORS = "MANAGE_COLLABORATORS"
    SUBMIT = "SUBMIT"
    APPROVE = "APPROVE"
    DELETE = "DELETE"


def has_access(binding: Optional[Binding], is_admin: bool = False) -> bool:
    return is_admin or binding is not None


def can_edit(binding: Optional[Binding], is_admin: bool = False) -> bool:
    if is_admin:
        return True
    if binding is None:
        return False
    return binding.permission.can_write() and binding.role.can_edit()


def can_manage_collaborators(binding: Optional[Binding], is_admin: bool = False) -> bool:
    if is_admin:
        return True
    if binding is None:
        return False
    return binding.permission.can_manage_collaborators() or binding.role.can_manage_collaborators()


def can_submit_document(binding: Optional[Binding], is_admin: bool = False) -> bool:
    if binding is None:
        return False
    return binding.role.can_submit_document() and (
        binding.permission.can_write()
        or binding.permission == CollaboratorPermission.FULL_ACCESS
    )


def can_approve_document(binding: Optional[Binding], is_admin: bool = False) -> bool:
    if binding is None:
        return False
    return binding.role.can_approve_document()


def can_delete_document(binding: Optional[Binding], is_admin: bool = False) -> bool:
    if is_admin:
        return True
    if binding is None:
        return False
    return binding.role == CollaboratorRole.PRIMARY_STUDENT


POLICY: Dict[DocumentAction, Callable[[Optional[Binding], bool], bool]] = {
    DocumentAction.VIEW: has_access,
    DocumentAction.EDIT: can_edit,
    DocumentAction.MANAGE_COLLABORATORS: can_manage_collaborators,
    DocumentAction.SUBMIT: can_submit_document,
    DocumentAction.APPROVE: can_approve_document,
    DocumentAction.DELETE: can_delete_document,
}


def decide(action: DocumentAction, binding: Optional[Binding], is_admin: bool = False) -> bool:
    """Evaluate a single action against the policy table."""
    return POLICY[action](binding, is_admin)
