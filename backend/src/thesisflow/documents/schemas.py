"""Pydantic schemas for document endpoints."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..domain.documents.document_status import DocumentStatus


class DocumentCreate(BaseModel):
    """Request schema for creating a document (POST /documents).

    A student creates a document for themselves; an administrator must
    name the student.
    """
    model_config = ConfigDict(extra='forbid')

    title: str = Field(..., min_length=1, max_length=500, examples=["Deep learning for crop yield prediction"])
    description: Optional[str] = Field(None, max_length=5000)
    student_email: Optional[EmailStr] = Field(
        None,
        description="Primary student (required when an administrator creates the document)",
    )
    advisor_email: Optional[EmailStr] = Field(None, description="Primary advisor, optional")


class DocumentUpdate(BaseModel):
    """Request schema for editing a document (PATCH /documents/{id})."""
    model_config = ConfigDict(extra='forbid')

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)


class StatusChangeRequest(BaseModel):
    """Request schema for POST /documents/{id}/status.

    ``status`` is validated by the lifecycle so that an unknown name is
    reported as an invalid transition.
    """
    model_config = ConfigDict(extra='forbid')

    status: str = Field(..., examples=["SUBMITTED"])
    reason: Optional[str] = Field(
        None,
        max_length=5000,
        description="Required when sending the document back for REVISION",
        examples=["needs more citations"],
    )


class DocumentCapabilities(BaseModel):
    view: bool
    edit: bool
    manage_collaborators: bool
    submit: bool
    approve: bool
    delete: bool


class DocumentResponse(BaseModel):
    """Document as returned by the API."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: Optional[str] = None
    status: DocumentStatus
    primary_student_id: Optional[UUID] = None
    primary_advisor_id: Optional[UUID] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class DocumentDetailResponse(DocumentResponse):
    """Document plus what the caller may do with it."""
    capabilities: DocumentCapabilities
    allowed_transitions: List[DocumentStatus]


class DocumentListResponse(BaseModel):
    items: List[DocumentResponse]
    total: int
