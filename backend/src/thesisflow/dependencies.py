"""Global FastAPI dependencies wiring services to shared application state.

Shared, process-wide objects are built once in ``main.create_app`` and
stored on ``app.state``:

- ``presence``: EditingPresenceTracker
- ``publisher``: NotificationPublisher
- ``decision_sink``: DecisionAuditSink

Services are cheap and request-scoped; they receive the request's
database session plus references to those shared objects.
"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .audit.decisions import DecisionAuditSink
from .authorization.service import AuthorizationService
from .collaborators.service import CollaboratorService
from .config import get_settings
from .database import get_db
from .documents.lifecycle import DocumentLifecycleService
from .documents.service import DocumentService
from .editing.presence import EditingPresenceTracker
from .notifications.ports import NotificationPublisher


def get_presence_tracker(request: Request) -> EditingPresenceTracker:
    return request.app.state.presence


def get_notification_publisher(request: Request) -> NotificationPublisher:
    return request.app.state.publisher


def get_decision_sink(request: Request) -> DecisionAuditSink:
    return request.app.state.decision_sink


def get_authorization_service(
    sink: DecisionAuditSink = Depends(get_decision_sink),
) -> AuthorizationService:
    return AuthorizationService(audit_sink=sink)


def get_document_service(
    db: Session = Depends(get_db),
    authorization: AuthorizationService = Depends(get_authorization_service),
    publisher: NotificationPublisher = Depends(get_notification_publisher),
    presence: EditingPresenceTracker = Depends(get_presence_tracker),
) -> DocumentService:
    return DocumentService(db, authorization=authorization, publisher=publisher, presence=presence)


def get_lifecycle_service(
    db: Session = Depends(get_db),
    authorization: AuthorizationService = Depends(get_authorization_service),
    publisher: NotificationPublisher = Depends(get_notification_publisher),
) -> DocumentLifecycleService:
    return DocumentLifecycleService(db, authorization=authorization, publisher=publisher)


def get_collaborator_service(
    db: Session = Depends(get_db),
    authorization: AuthorizationService = Depends(get_authorization_service),
    publisher: NotificationPublisher = Depends(get_notification_publisher),
) -> CollaboratorService:
    return CollaboratorService(
        db, authorization=authorization, publisher=publisher, settings=get_settings()
    )
