"""Live editing presence API Router."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from ..auth.dependencies import get_current_user
from ..dependencies import get_document_service, get_presence_tracker
from ..documents.service import DocumentService
from ..domain.authorization.policy import DocumentAction
from ..models.user import User
from .presence import EditingPresenceTracker

router = APIRouter(prefix="/documents/{document_id}/editors", tags=["editing"])


class EditorsResponse(BaseModel):
    document_id: UUID
    editors: List[UUID]


@router.get(
    "",
    response_model=EditorsResponse,
    summary="List live editors",
)
def list_editors(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
    presence: EditingPresenceTracker = Depends(get_presence_tracker),
) -> EditorsResponse:
    document = service.get_document(document_id, current_user)
    return EditorsResponse(document_id=document.id, editors=presence.editors(document.id))


@router.post(
    "",
    response_model=EditorsResponse,
    summary="Join or refresh an editing session",
    description="Marks the caller as editing. Call again periodically as a heartbeat.",
)
def join_editing(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
    presence: EditingPresenceTracker = Depends(get_presence_tracker),
) -> EditorsResponse:
    document = service.get_document(document_id, current_user)
    service.authorization.require(current_user, document, DocumentAction.EDIT)
    presence.join(document.id, current_user.id)
    return EditorsResponse(document_id=document.id, editors=presence.editors(document.id))


@router.delete(
    "",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Leave the editing session",
)
def leave_editing(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
    presence: EditingPresenceTracker = Depends(get_presence_tracker),
) -> Response:
    document = service.get_document(document_id, current_user)
    presence.leave(document.id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
