"""Collaborators API Router - registry operations and the legacy backfill."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.dependencies import get_current_admin, get_current_user
from ..database import get_db
from ..dependencies import get_collaborator_service
from ..models.user import User
from .migration import migrate_existing_documents
from .schemas import (
    CollaboratorBatchCreate,
    CollaboratorCreate,
    CollaboratorListResponse,
    CollaboratorRemove,
    CollaboratorResponse,
    MigrationReportResponse,
    PermissionUpdate,
    RoleUpdate,
)
from .service import CollaboratorRequest, CollaboratorService

router = APIRouter(prefix="/documents/{document_id}/collaborators", tags=["collaborators"])
admin_router = APIRouter(prefix="/admin/collaborators", tags=["admin"])


@router.get(
    "",
    response_model=CollaboratorListResponse,
    summary="List collaborators",
    description="Active collaborators of a document; `include_inactive=true` adds removed ones.",
)
def list_collaborators(
    document_id: UUID,
    include_inactive: bool = Query(False, description="Include removed collaborators"),
    current_user: User = Depends(get_current_user),
    service: CollaboratorService = Depends(get_collaborator_service),
) -> CollaboratorListResponse:
    collaborators = service.list_collaborators(document_id, current_user, include_inactive=include_inactive)
    return CollaboratorListResponse(
        items=[CollaboratorResponse.model_validate(c) for c in collaborators],
        total=len(collaborators),
    )


@router.post(
    "",
    response_model=CollaboratorResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add collaborator",
    description="""
    Bind a user to the document. A previously removed collaborator is
    reactivated with the same id.

    **Permissions:** FULL_ACCESS permission or a primary role, or ADMIN.
    """,
)
def add_collaborator(
    document_id: UUID,
    data: CollaboratorCreate,
    current_user: User = Depends(get_current_user),
    service: CollaboratorService = Depends(get_collaborator_service),
) -> CollaboratorResponse:
    collaborator = service.add_collaborator(
        document_id,
        current_user,
        user_email=data.user_email,
        role=data.role,
        permission=data.permission,
        message=data.message,
    )
    return CollaboratorResponse.model_validate(collaborator)


@router.post(
    "/batch",
    response_model=CollaboratorListResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add several collaborators",
    description="Adds every listed collaborator or none of them.",
)
def add_collaborators(
    document_id: UUID,
    data: CollaboratorBatchCreate,
    current_user: User = Depends(get_current_user),
    service: CollaboratorService = Depends(get_collaborator_service),
) -> CollaboratorListResponse:
    requests = [
        CollaboratorRequest(item.user_email, item.role, item.permission, item.message)
        for item in data.collaborators
    ]
    collaborators = service.add_collaborators(document_id, current_user, requests)
    return CollaboratorListResponse(
        items=[CollaboratorResponse.model_validate(c) for c in collaborators],
        total=len(collaborators),
    )


@router.delete(
    "/{collaborator_id}",
    response_model=CollaboratorResponse,
    summary="Remove collaborator",
    description="Deactivates the collaborator; the record is kept. Primaries cannot be removed.",
)
def remove_collaborator(
    document_id: UUID,
    collaborator_id: UUID,
    data: Optional[CollaboratorRemove] = Body(None),
    current_user: User = Depends(get_current_user),
    service: CollaboratorService = Depends(get_collaborator_service),
) -> CollaboratorResponse:
    collaborator = service.remove_collaborator(
        document_id,
        current_user,
        collaborator_id,
        reason=data.reason if data else None,
    )
    return CollaboratorResponse.model_validate(collaborator)


@router.patch(
    "/{collaborator_id}/permission",
    response_model=CollaboratorResponse,
    summary="Change collaborator permission",
)
def update_permission(
    document_id: UUID,
    collaborator_id: UUID,
    data: PermissionUpdate,
    current_user: User = Depends(get_current_user),
    service: CollaboratorService = Depends(get_collaborator_service),
) -> CollaboratorResponse:
    collaborator = service.update_permission(
        collaborator_id, current_user, data.permission, document_id=document_id
    )
    return CollaboratorResponse.model_validate(collaborator)


@router.patch(
    "/{collaborator_id}/role",
    response_model=CollaboratorResponse,
    summary="Change collaborator role",
    description="Role changes stay within the student or advisor family; primaries change only by promotion.",
)
def update_role(
    document_id: UUID,
    collaborator_id: UUID,
    data: RoleUpdate,
    current_user: User = Depends(get_current_user),
    service: CollaboratorService = Depends(get_collaborator_service),
) -> CollaboratorResponse:
    collaborator = service.update_role(collaborator_id, current_user, data.role, document_id=document_id)
    return CollaboratorResponse.model_validate(collaborator)


@router.post(
    "/{collaborator_id}/promote",
    response_model=CollaboratorResponse,
    summary="Promote collaborator to primary",
    description="The current primary of the family is demoted to the secondary role with READ_WRITE.",
)
def promote_to_primary(
    document_id: UUID,
    collaborator_id: UUID,
    current_user: User = Depends(get_current_user),
    service: CollaboratorService = Depends(get_collaborator_service),
) -> CollaboratorResponse:
    collaborator = service.promote_to_primary(collaborator_id, current_user, document_id=document_id)
    return CollaboratorResponse.model_validate(collaborator)


@admin_router.post(
    "/migrate",
    response_model=MigrationReportResponse,
    summary="Backfill primary collaborators",
    description="""
    Create primary collaborators for legacy documents that only carry the
    single student/advisor fields. Safe to run repeatedly.

    **Permissions:** ADMIN
    """,
)
def migrate_collaborators(
    current_user: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
) -> MigrationReportResponse:
    report = migrate_existing_documents(db, actor_id=current_user.id)
    return MigrationReportResponse(**report.to_dict())
