"""Pydantic schemas for collaborator endpoints."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..domain.collaboration.roles import CollaboratorPermission, CollaboratorRole


class CollaboratorCreate(BaseModel):
    """Request schema for POST /documents/{id}/collaborators."""
    model_config = ConfigDict(extra='forbid')

    user_email: EmailStr = Field(..., examples=["bruno@uni.edu"])
    role: CollaboratorRole = Field(..., examples=["SECONDARY_STUDENT"])
    permission: CollaboratorPermission = Field(
        CollaboratorPermission.READ_WRITE,
        examples=["READ_WRITE"],
    )
    message: Optional[str] = Field(None, max_length=1000, description="Note for the invited user")


class CollaboratorBatchCreate(BaseModel):
    """Request schema for POST /documents/{id}/collaborators/batch (all or nothing)."""
    model_config = ConfigDict(extra='forbid')

    collaborators: List[CollaboratorCreate] = Field(..., min_length=1, max_length=20)


class CollaboratorRemove(BaseModel):
    model_config = ConfigDict(extra='forbid')

    reason: Optional[str] = Field(None, max_length=1000)


class PermissionUpdate(BaseModel):
    model_config = ConfigDict(extra='forbid')

    permission: CollaboratorPermission


class RoleUpdate(BaseModel):
    model_config = ConfigDict(extra='forbid')

    role: CollaboratorRole


class CollaboratorResponse(BaseModel):
    """Collaborator record as returned by the API."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    user_id: UUID
    role: CollaboratorRole
    permission: CollaboratorPermission
    active: bool
    removed_at: Optional[datetime] = None
    removal_reason: Optional[str] = None
    added_by_id: Optional[UUID] = None
    added_at: datetime


class CollaboratorListResponse(BaseModel):
    items: List[CollaboratorResponse]
    total: int


class MigrationReportResponse(BaseModel):
    documents_scanned: int
    documents_updated: int
    students_created: int
    advisors_created: int
    rows_reactivated: int
