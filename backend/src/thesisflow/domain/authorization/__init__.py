"""Pure authorization policy for document collaborators."""

from .policy import (
    Binding,
    Grant,
    DocumentAction,
    POLICY,
    decide,
    has_access,
    can_edit,
    can_manage_collaborators,
    can_submit_document,
    can_approve_document,
    can_delete_document,
)

__all__ = [
    "Binding",
    "Grant",
    "DocumentAction",
    "POLICY",
    "decide",
    "has_access",
    "can_edit",
    "can_manage_collaborators",
    "can_submit_document",
    "can_approve_document",
    "can_delete_document",
]
