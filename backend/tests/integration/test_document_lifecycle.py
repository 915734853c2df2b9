"""Integration tests for the document lifecycle state machine"""

import uuid

import pytest

from thesisflow.domain.collaboration.roles import CollaboratorPermission as P
from thesisflow.domain.collaboration.roles import CollaboratorRole as R
from thesisflow.domain.documents.document_status import DocumentStatus
from thesisflow.domain.errors import (
    BusinessRuleError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
)
from thesisflow.domain.events import DocumentStatusChanged
from thesisflow.models import AuditLog


@pytest.fixture
def submitted(lifecycle_service, document, student, publisher):
    lifecycle_service.change_status(document.id, student, DocumentStatus.SUBMITTED)
    publisher.clear()
    return document


class TestSubmit:
    """DRAFT → SUBMITTED"""

    def test_student_submits(self, lifecycle_service, document, student, advisor, publisher):
        updated = lifecycle_service.change_status(document.id, student, "SUBMITTED")

        assert updated.status == DocumentStatus.SUBMITTED
        assert updated.submitted_at is not None

        event = publisher.of_type(DocumentStatusChanged)[0]
        assert event.old_status == DocumentStatus.DRAFT
        assert event.new_status == DocumentStatus.SUBMITTED
        assert event.recipient_ids == (advisor.id,)

    def test_advisor_cannot_submit(self, lifecycle_service, document, advisor):
        with pytest.raises(PermissionDeniedError):
            lifecycle_service.change_status(document.id, advisor, DocumentStatus.SUBMITTED)

    def test_read_comment_student_cannot_submit(
        self, lifecycle_service, collaborator_service, document, student, student2
    ):
        collaborator_service.add_collaborator(
            document.id, student, student2.email, R.CO_STUDENT, P.READ_COMMENT
        )
        with pytest.raises(PermissionDeniedError):
            lifecycle_service.change_status(document.id, student2, DocumentStatus.SUBMITTED)

    def test_secondary_student_submits(
        self, lifecycle_service, collaborator_service, document, student, student2
    ):
        collaborator_service.add_collaborator(
            document.id, student, student2.email, R.SECONDARY_STUDENT, P.READ_WRITE
        )
        updated = lifecycle_service.change_status(document.id, student2, DocumentStatus.SUBMITTED)
        assert updated.status == DocumentStatus.SUBMITTED

    def test_admin_without_binding_cannot_submit(self, lifecycle_service, document, admin):
        with pytest.raises(PermissionDeniedError):
            lifecycle_service.change_status(document.id, admin, DocumentStatus.SUBMITTED)

    def test_outsider_is_denied_before_validation(self, lifecycle_service, document, outsider, decision_sink):
        """Test a non-member gets 403 even for an invalid pair"""
        with pytest.raises(PermissionDeniedError):
            lifecycle_service.change_status(document.id, outsider, DocumentStatus.FINALIZED)
        assert decision_sink.denied()[-1].action == "VIEW"


class TestReview:
    """Advisor decisions on a SUBMITTED document"""

    def test_revision_requires_reason(self, lifecycle_service, submitted, advisor, db_session, publisher):
        with pytest.raises(BusinessRuleError, match="reason"):
            lifecycle_service.change_status(submitted.id, advisor, DocumentStatus.REVISION, reason="   ")

        db_session.refresh(submitted)
        assert submitted.status == DocumentStatus.SUBMITTED
        assert publisher.events == []

    def test_revision_with_reason_notifies_students(
        self, lifecycle_service, collaborator_service, document, student, student2, advisor, publisher
    ):
        collaborator_service.add_collaborator(
            document.id, student, student2.email, R.SECONDARY_STUDENT, P.READ_WRITE
        )
        lifecycle_service.change_status(document.id, student, DocumentStatus.SUBMITTED)
        publisher.clear()

        updated = lifecycle_service.change_status(
            document.id, advisor, "REVISION", reason="needs more citations"
        )

        assert updated.status == DocumentStatus.REVISION
        assert updated.rejection_reason == "needs more citations"
        assert updated.rejected_at is not None

        event = publisher.of_type(DocumentStatusChanged)[0]
        assert event.reason == "needs more citations"
        assert set(event.recipient_ids) == {student.id, student2.id}
        assert advisor.id not in event.recipient_ids

    def test_student_cannot_approve(self, lifecycle_service, submitted, student):
        with pytest.raises(PermissionDeniedError):
            lifecycle_service.change_status(submitted.id, student, DocumentStatus.APPROVED)

    def test_reviewer_cannot_approve(self, lifecycle_service, collaborator_service, submitted, student, advisor2):
        collaborator_service.add_collaborator(
            submitted.id, student, advisor2.email, R.REVIEWER, P.FULL_ACCESS
        )
        with pytest.raises(PermissionDeniedError):
            lifecycle_service.change_status(submitted.id, advisor2, DocumentStatus.APPROVED)

    def test_co_advisor_approves(self, lifecycle_service, collaborator_service, submitted, advisor, advisor2):
        collaborator_service.add_collaborator(
            submitted.id, advisor, advisor2.email, R.CO_ADVISOR, P.READ_ONLY
        )
        updated = lifecycle_service.change_status(submitted.id, advisor2, DocumentStatus.APPROVED)

        assert updated.status == DocumentStatus.APPROVED
        assert updated.approved_at is not None

    def test_resubmission_clears_rejection(self, lifecycle_service, submitted, student, advisor):
        lifecycle_service.change_status(submitted.id, advisor, DocumentStatus.REVISION, reason="fix chapter 2")
        updated = lifecycle_service.change_status(submitted.id, student, DocumentStatus.SUBMITTED)

        assert updated.rejection_reason is None
        assert updated.rejected_at is None


class TestFinalizeAndReopen:
    """APPROVED → FINALIZED and the DRAFT reopen paths"""

    @pytest.fixture
    def approved(self, lifecycle_service, submitted, advisor):
        return lifecycle_service.change_status(submitted.id, advisor, DocumentStatus.APPROVED)

    def test_finalize(self, lifecycle_service, approved, student, advisor, publisher):
        publisher.clear()
        updated = lifecycle_service.change_status(approved.id, student, DocumentStatus.FINALIZED)

        assert updated.status == DocumentStatus.FINALIZED
        assert publisher.of_type(DocumentStatusChanged)[0].recipient_ids == (advisor.id,)

    def test_reopen_to_draft_clears_timestamps(self, lifecycle_service, approved, advisor):
        updated = lifecycle_service.change_status(approved.id, advisor, DocumentStatus.DRAFT)

        assert updated.status == DocumentStatus.DRAFT
        assert updated.submitted_at is None
        assert updated.approved_at is None

    def test_finalized_to_draft_is_admin_only(self, lifecycle_service, approved, student, advisor, admin):
        lifecycle_service.change_status(approved.id, student, DocumentStatus.FINALIZED)

        for actor in (student, advisor):
            with pytest.raises(PermissionDeniedError):
                lifecycle_service.change_status(approved.id, actor, DocumentStatus.DRAFT)

        updated = lifecycle_service.change_status(approved.id, admin, DocumentStatus.DRAFT)
        assert updated.status == DocumentStatus.DRAFT


class TestTransitionErrors:
    """Pairs outside the table and unknown documents"""

    def test_draft_to_finalized(self, lifecycle_service, document, student):
        with pytest.raises(InvalidTransitionError):
            lifecycle_service.change_status(document.id, student, DocumentStatus.FINALIZED)

    def test_unknown_status_name(self, lifecycle_service, document, student):
        with pytest.raises(InvalidTransitionError):
            lifecycle_service.change_status(document.id, student, "PUBLISHED")

    def test_unknown_document(self, lifecycle_service, student):
        with pytest.raises(NotFoundError):
            lifecycle_service.change_status(uuid.uuid4(), student, DocumentStatus.SUBMITTED)

    def test_access_is_checked_before_the_pair(self, lifecycle_service, document, student, outsider):
        """Test the same invalid pair is a 400 for a member and a 403 for a non-member"""
        with pytest.raises(InvalidTransitionError):
            lifecycle_service.change_status(document.id, student, DocumentStatus.APPROVED)
        with pytest.raises(PermissionDeniedError):
            lifecycle_service.change_status(document.id, outsider, DocumentStatus.APPROVED)

    def test_status_change_is_audited(self, db_session, lifecycle_service, document, student):
        lifecycle_service.change_status(document.id, student, DocumentStatus.SUBMITTED)

        entry = db_session.query(AuditLog).filter_by(action="DOCUMENT_STATUS_CHANGED").one()
        assert entry.entity_id == document.id
        assert entry.metadata_json["from"] == "DRAFT"
        assert entry.metadata_json["to"] == "SUBMITTED"


class TestLegacyDocuments:
    """Legacy single student/advisor fields act as primaries"""

    def test_legacy_student_submits_and_advisor_approves(
        self, lifecycle_service, legacy_document, student, advisor, publisher
    ):
        lifecycle_service.change_status(legacy_document.id, student, DocumentStatus.SUBMITTED)
        assert publisher.of_type(DocumentStatusChanged)[0].recipient_ids == (advisor.id,)

        updated = lifecycle_service.change_status(legacy_document.id, advisor, DocumentStatus.APPROVED)
        assert updated.status == DocumentStatus.APPROVED


class TestAllowedTransitions:
    """allowed_transitions reflects the caller's guards"""

    def test_advisor_on_submitted(self, lifecycle_service, submitted, advisor):
        allowed = lifecycle_service.allowed_transitions(advisor, submitted)
        assert set(allowed) == {DocumentStatus.REVISION, DocumentStatus.APPROVED, DocumentStatus.DRAFT}

    def test_student_on_submitted(self, lifecycle_service, submitted, student):
        assert lifecycle_service.allowed_transitions(student, submitted) == [DocumentStatus.DRAFT]

    def test_outsider_has_none(self, lifecycle_service, document, outsider):
        assert lifecycle_service.allowed_transitions(outsider, document) == []
