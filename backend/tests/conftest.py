"""Pytest fixtures for ThesisFlow tests.

Provides reusable test fixtures for:
- In-memory SQLite database session (fresh schema per test)
- Users with global roles (students, advisors, admin, outsider)
- Services wired to in-memory notification publisher and decision sink
- A document with a primary student and primary advisor
- Authenticated FastAPI test clients

Usage:
    def test_submit(lifecycle_service, document, student):
        lifecycle_service.change_status(document.id, student, "SUBMITTED")
"""

import os

# Set environment variables BEFORE any thesisflow imports so settings pick them up
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timedelta, timezone
from typing import Callable, Generator, List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from thesisflow.audit.decisions import InMemoryDecisionAuditSink
from thesisflow.auth.jwt import create_access_token
from thesisflow.authorization.service import AuthorizationService
from thesisflow.collaborators.service import CollaboratorService
from thesisflow.config import get_settings
from thesisflow.database import get_db
from thesisflow.documents.lifecycle import DocumentLifecycleService
from thesisflow.documents.service import DocumentService
from thesisflow.domain.collaboration.roles import CollaboratorRole
from thesisflow.editing.presence import EditingPresenceTracker
from thesisflow.models import Base, Document, DocumentCollaborator, User
from thesisflow.notifications.publishers import InMemoryNotificationPublisher


test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test.

    Creates all tables before the test and drops them after.
    """
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


# =============================================================================
# USERS
# =============================================================================

@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    """Factory creating committed users with the given global roles."""

    def _make_user(email: str, *roles: str, name: str = None) -> User:
        user = User(
            email=email,
            name=name or email.split("@")[0].title(),
            roles=list(roles),
            status="ACTIVE",
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def student(make_user) -> User:
    return make_user("ana@uni.edu", "STUDENT", name="Ana Student")


@pytest.fixture
def student2(make_user) -> User:
    return make_user("bruno@uni.edu", "STUDENT", name="Bruno Student")


@pytest.fixture
def student3(make_user) -> User:
    return make_user("carla@uni.edu", "STUDENT", name="Carla Student")


@pytest.fixture
def advisor(make_user) -> User:
    return make_user("prof.dias@uni.edu", "ADVISOR", name="Prof. Dias")


@pytest.fixture
def advisor2(make_user) -> User:
    return make_user("prof.elias@uni.edu", "ADVISOR", name="Prof. Elias")


@pytest.fixture
def admin(make_user) -> User:
    return make_user("admin@uni.edu", "ADMIN", name="Admin")


@pytest.fixture
def outsider(make_user) -> User:
    return make_user("outsider@uni.edu", "STUDENT", name="Outsider")


# =============================================================================
# SERVICES
# =============================================================================

@pytest.fixture
def publisher() -> InMemoryNotificationPublisher:
    return InMemoryNotificationPublisher()


@pytest.fixture
def decision_sink() -> InMemoryDecisionAuditSink:
    return InMemoryDecisionAuditSink()


@pytest.fixture
def authorization(decision_sink) -> AuthorizationService:
    return AuthorizationService(audit_sink=decision_sink)


class FakeClock:
    """Manually advanced clock for presence tests."""

    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def presence(clock) -> EditingPresenceTracker:
    return EditingPresenceTracker(timeout_seconds=300, clock=clock)


@pytest.fixture
def document_service(db_session, authorization, publisher, presence) -> DocumentService:
    return DocumentService(db_session, authorization=authorization, publisher=publisher, presence=presence)


@pytest.fixture
def lifecycle_service(db_session, authorization, publisher) -> DocumentLifecycleService:
    return DocumentLifecycleService(db_session, authorization=authorization, publisher=publisher)


@pytest.fixture
def collaborator_service(db_session, authorization, publisher) -> CollaboratorService:
    return CollaboratorService(
        db_session, authorization=authorization, publisher=publisher, settings=get_settings()
    )


# =============================================================================
# DOCUMENTS
# =============================================================================

@pytest.fixture
def document(document_service, student, advisor, publisher) -> Document:
    """DRAFT document with Ana as primary student and Prof. Dias as primary advisor."""
    created = document_service.create_document(
        student,
        "Deep learning for crop yield prediction",
        description="Master thesis",
        advisor_email=advisor.email,
    )
    publisher.clear()
    return created


@pytest.fixture
def legacy_document(db_session, student, advisor) -> Document:
    """Document that only carries the legacy single student/advisor fields."""
    doc = Document(
        title="Legacy monograph",
        legacy_student_id=student.id,
        legacy_advisor_id=advisor.id,
    )
    db_session.add(doc)
    db_session.commit()
    db_session.refresh(doc)
    return doc


def active_primaries(db_session: Session, document_id, role: CollaboratorRole) -> List[DocumentCollaborator]:
    return (
        db_session.query(DocumentCollaborator)
        .filter(
            DocumentCollaborator.document_id == document_id,
            DocumentCollaborator.role == role,
            DocumentCollaborator.active.is_(True),
        )
        .all()
    )


@pytest.fixture
def assert_primary_invariant(db_session) -> Callable:
    """Check at most one active primary student and advisor per document."""

    def _check(document_id) -> None:
        db_session.expire_all()
        assert len(active_primaries(db_session, document_id, CollaboratorRole.PRIMARY_STUDENT)) <= 1
        assert len(active_primaries(db_session, document_id, CollaboratorRole.PRIMARY_ADVISOR)) <= 1

    return _check


# =============================================================================
# API CLIENTS
# =============================================================================

@pytest.fixture
def app(db_session, publisher, decision_sink, presence):
    """FastAPI app using the test session and in-memory adapters."""
    from thesisflow.main import create_app

    application = create_app(publisher=publisher, decision_sink=decision_sink, presence=presence)

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest.fixture
def client(app) -> TestClient:
    """Unauthenticated test client (lifespan not started)."""
    return TestClient(app)


@pytest.fixture
def auth_headers() -> Callable[[User], dict]:
    """Build an Authorization header for a user."""

    def _headers(user: User) -> dict:
        token = create_access_token(user.id, user.email, user.roles)
        return {"Authorization": f"Bearer {token}"}

    return _headers
