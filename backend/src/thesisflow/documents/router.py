"""Documents API Router - create, list, detail, edit, delete and status changes."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from ..auth.dependencies import get_current_user, require_role
from ..auth.roles import UserRole
from ..authorization.service import AuthorizationService
from ..dependencies import (
    get_authorization_service,
    get_document_service,
    get_lifecycle_service,
)
from ..domain.documents.document_status import parse_status
from ..models.user import User
from .lifecycle import DocumentLifecycleService
from .schemas import (
    DocumentCapabilities,
    DocumentCreate,
    DocumentDetailResponse,
    DocumentListResponse,
    DocumentResponse,
    DocumentUpdate,
    StatusChangeRequest,
)
from .service import DocumentService

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post(
    "",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create document",
    description="""
    Create a document in DRAFT with its primary collaborators.

    **Permissions:** STUDENT (for themselves) or ADMIN (must name `student_email`)
    """,
)
def create_document(
    data: DocumentCreate,
    current_user: User = Depends(require_role(UserRole.STUDENT, UserRole.ADMIN)),
    service: DocumentService = Depends(get_document_service),
) -> DocumentResponse:
    document = service.create_document(
        creator=current_user,
        title=data.title,
        description=data.description,
        student_email=data.student_email,
        advisor_email=data.advisor_email,
    )
    return DocumentResponse.model_validate(document)


@router.get(
    "",
    response_model=DocumentListResponse,
    summary="List documents",
    description="Documents the caller collaborates on. Administrators see every document.",
)
def list_documents(
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
) -> DocumentListResponse:
    status_value = parse_status(status_filter) if status_filter else None
    documents = service.list_documents_for_user(current_user, status=status_value)
    return DocumentListResponse(
        items=[DocumentResponse.model_validate(d) for d in documents],
        total=len(documents),
    )


@router.get(
    "/{document_id}",
    response_model=DocumentDetailResponse,
    summary="Get document",
    description="Document detail with the caller's capabilities and allowed status transitions.",
)
def get_document(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
    lifecycle: DocumentLifecycleService = Depends(get_lifecycle_service),
    authorization: AuthorizationService = Depends(get_authorization_service),
) -> DocumentDetailResponse:
    document = service.get_document(document_id, current_user)
    base = DocumentResponse.model_validate(document)
    return DocumentDetailResponse(
        **base.model_dump(),
        capabilities=DocumentCapabilities(**authorization.capabilities(current_user, document)),
        allowed_transitions=lifecycle.allowed_transitions(current_user, document),
    )


@router.patch(
    "/{document_id}",
    response_model=DocumentResponse,
    summary="Edit document",
    description="""
    Update title and/or description.

    **Permissions:** collaborators with write permission and an edit-capable role, or ADMIN.
    Rejected while another user is editing the document.
    """,
)
def update_document(
    document_id: UUID,
    data: DocumentUpdate,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
) -> DocumentResponse:
    document = service.update_document(
        document_id,
        current_user,
        title=data.title,
        description=data.description,
    )
    return DocumentResponse.model_validate(document)


@router.delete(
    "/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete document",
    description="""
    Delete a DRAFT document.

    **Permissions:** the PRIMARY_STUDENT, or ADMIN (any status).
    """,
)
def delete_document(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
) -> Response:
    service.delete_document(document_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{document_id}/status",
    response_model=DocumentResponse,
    summary="Change document status",
    description="""
    Apply a workflow transition.

    **Transitions:**
    - DRAFT/REVISION → SUBMITTED: student collaborator with write permission
    - SUBMITTED → REVISION: advisor collaborator, `reason` required
    - SUBMITTED/REVISION → APPROVED: advisor collaborator
    - APPROVED → FINALIZED: editors or collaborator managers
    - SUBMITTED/REVISION/APPROVED → DRAFT: editors or collaborator managers
    - FINALIZED → DRAFT: ADMIN only
    """,
)
def change_status(
    document_id: UUID,
    data: StatusChangeRequest,
    current_user: User = Depends(get_current_user),
    lifecycle: DocumentLifecycleService = Depends(get_lifecycle_service),
) -> DocumentResponse:
    document = lifecycle.change_status(document_id, current_user, data.status, reason=data.reason)
    return DocumentResponse.model_validate(document)
