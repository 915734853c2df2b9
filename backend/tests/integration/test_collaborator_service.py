"""Integration tests for the collaborator registry

Covers add / reactivate / remove / update / promote against a real
(SQLite) session, checking the single-primary invariant after every
mutation.
"""

import uuid

import pytest
from sqlalchemy.exc import IntegrityError

from thesisflow.collaborators.service import CollaboratorRequest
from thesisflow.database import transaction
from thesisflow.documents.service import load_document
from thesisflow.domain.collaboration.roles import CollaboratorPermission as P
from thesisflow.domain.collaboration.roles import CollaboratorRole as R
from thesisflow.domain.errors import (
    BusinessRuleError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
)
from thesisflow.domain.events import CollaboratorAdded, CollaboratorRemoved, CollaboratorRoleChanged
from thesisflow.models import AuditLog, DocumentCollaborator


def binding(db_session, document, user):
    return load_document(db_session, document.id).find_binding(user.id)


class TestAddCollaborator:
    """Adding collaborators"""

    def test_primary_student_adds_secondary(
        self, collaborator_service, document, student, student2, publisher, assert_primary_invariant
    ):
        collaborator = collaborator_service.add_collaborator(
            document.id, student, student2.email, R.SECONDARY_STUDENT, P.READ_WRITE,
            message="Welcome aboard",
        )

        assert collaborator.role == R.SECONDARY_STUDENT
        assert collaborator.permission == P.READ_WRITE
        assert collaborator.active is True
        assert collaborator.added_by_id == student.id

        events = publisher.of_type(CollaboratorAdded)
        assert len(events) == 1
        assert events[0].recipient_ids == (student2.id,)
        assert events[0].message == "Welcome aboard"
        assert events[0].reactivated is False
        assert_primary_invariant(document.id)

    def test_email_lookup_is_case_insensitive(self, collaborator_service, document, student, student2):
        collaborator = collaborator_service.add_collaborator(
            document.id, student, "  BRUNO@Uni.edu ", R.CO_STUDENT, P.READ_WRITE
        )
        assert collaborator.user_id == student2.id

    def test_unknown_user(self, collaborator_service, document, student):
        with pytest.raises(NotFoundError):
            collaborator_service.add_collaborator(
                document.id, student, "nobody@uni.edu", R.REVIEWER, P.READ_ONLY
            )

    def test_unknown_document(self, collaborator_service, student, student2):
        with pytest.raises(NotFoundError):
            collaborator_service.add_collaborator(
                uuid.uuid4(), student, student2.email, R.SECONDARY_STUDENT, P.READ_WRITE
            )

    def test_role_mismatch(self, collaborator_service, document, student, advisor2):
        """Test an advisor cannot take a student-family role"""
        with pytest.raises(BusinessRuleError, match="Role mismatch"):
            collaborator_service.add_collaborator(
                document.id, student, advisor2.email, R.SECONDARY_STUDENT, P.READ_WRITE
            )

    def test_non_family_roles_need_no_global_role(self, collaborator_service, document, student, advisor2):
        collaborator = collaborator_service.add_collaborator(
            document.id, student, advisor2.email, R.EXAMINER, P.READ_COMMENT
        )
        assert collaborator.role == R.EXAMINER

    def test_duplicate_active_binding(self, collaborator_service, document, student, student2):
        collaborator_service.add_collaborator(
            document.id, student, student2.email, R.SECONDARY_STUDENT, P.READ_WRITE
        )
        with pytest.raises(BusinessRuleError, match="already a collaborator"):
            collaborator_service.add_collaborator(
                document.id, student, student2.email, R.CO_STUDENT, P.READ_WRITE
            )

    def test_second_primary_rejected(self, collaborator_service, document, student, student2, assert_primary_invariant):
        with pytest.raises(BusinessRuleError, match="promotion"):
            collaborator_service.add_collaborator(
                document.id, student, student2.email, R.PRIMARY_STUDENT, P.FULL_ACCESS
            )
        assert_primary_invariant(document.id)

    def test_observer_must_be_read_only(self, collaborator_service, document, student, outsider):
        with pytest.raises(BusinessRuleError, match="READ_ONLY"):
            collaborator_service.add_collaborator(
                document.id, student, outsider.email, R.OBSERVER, P.READ_WRITE
            )

    def test_secondary_student_capacity(self, collaborator_service, document, student, make_user):
        """Test MAX_SECONDARY_STUDENTS (3) active secondaries per document"""
        for index in range(3):
            extra = make_user(f"student{index}@uni.edu", "STUDENT")
            collaborator_service.add_collaborator(
                document.id, student, extra.email, R.SECONDARY_STUDENT, P.READ_WRITE
            )

        fourth = make_user("student9@uni.edu", "STUDENT")
        with pytest.raises(BusinessRuleError, match="Maximum of 3"):
            collaborator_service.add_collaborator(
                document.id, student, fourth.email, R.SECONDARY_STUDENT, P.READ_WRITE
            )

        # CO_STUDENT has no limit
        collaborator_service.add_collaborator(
            document.id, student, fourth.email, R.CO_STUDENT, P.READ_WRITE
        )

    def test_secondary_advisor_capacity(self, collaborator_service, document, advisor, make_user):
        for index in range(2):
            extra = make_user(f"prof{index}@uni.edu", "ADVISOR")
            collaborator_service.add_collaborator(
                document.id, advisor, extra.email, R.SECONDARY_ADVISOR, P.READ_WRITE
            )

        third = make_user("prof9@uni.edu", "ADVISOR")
        with pytest.raises(BusinessRuleError):
            collaborator_service.add_collaborator(
                document.id, advisor, third.email, R.SECONDARY_ADVISOR, P.READ_WRITE
            )

    def test_requires_manage_permission(
        self, collaborator_service, document, student, student2, student3, decision_sink
    ):
        """Test a READ_WRITE secondary cannot add collaborators and the denial is audited"""
        collaborator_service.add_collaborator(
            document.id, student, student2.email, R.SECONDARY_STUDENT, P.READ_WRITE
        )
        decision_sink.clear()

        with pytest.raises(PermissionDeniedError):
            collaborator_service.add_collaborator(
                document.id, student2, student3.email, R.SECONDARY_STUDENT, P.READ_WRITE
            )

        denied = decision_sink.denied()
        assert len(denied) == 1
        assert denied[0].actor_id == student2.id
        assert denied[0].action == "MANAGE_COLLABORATORS"
        assert denied[0].resource_id == document.id

    def test_admin_can_add(self, collaborator_service, document, admin, advisor2):
        collaborator = collaborator_service.add_collaborator(
            document.id, admin, advisor2.email, R.CO_ADVISOR, P.READ_COMMENT
        )
        assert collaborator.added_by_id == admin.id

    def test_batch_is_all_or_nothing(
        self, db_session, collaborator_service, document, student, student2, advisor2, publisher
    ):
        requests = [
            CollaboratorRequest(student2.email, R.SECONDARY_STUDENT, P.READ_WRITE),
            CollaboratorRequest(advisor2.email, R.SECONDARY_STUDENT, P.READ_WRITE),
        ]

        with pytest.raises(BusinessRuleError):
            collaborator_service.add_collaborators(document.id, student, requests)

        assert binding(db_session, document, student2) is None
        assert publisher.events == []

    def test_batch_success(self, collaborator_service, document, student, student2, advisor2, publisher):
        added = collaborator_service.add_collaborators(document.id, student, [
            CollaboratorRequest(student2.email, R.SECONDARY_STUDENT, P.READ_WRITE),
            CollaboratorRequest(advisor2.email, R.CO_ADVISOR, P.READ_COMMENT),
        ])

        assert [c.user_id for c in added] == [student2.id, advisor2.id]
        assert len(publisher.of_type(CollaboratorAdded)) == 2


class TestRemoveAndReactivate:
    """Removal keeps history; re-adding reactivates the same row"""

    def test_remove_then_readd_reuses_record(
        self, db_session, collaborator_service, document, student, student2, publisher
    ):
        first = collaborator_service.add_collaborator(
            document.id, student, student2.email, R.SECONDARY_STUDENT, P.READ_WRITE
        )
        first_id = first.id

        removed = collaborator_service.remove_collaborator(
            document.id, student, first_id, reason="left the project"
        )
        assert removed.active is False
        assert removed.removed_at is not None
        assert removed.removal_reason == "left the project"
        assert publisher.of_type(CollaboratorRemoved)[0].reason == "left the project"

        again = collaborator_service.add_collaborator(
            document.id, student, student2.email, R.CO_STUDENT, P.READ_COMMENT
        )

        assert again.id == first_id
        assert again.active is True
        assert again.role == R.CO_STUDENT
        assert again.removed_at is None
        assert again.removal_reason is None
        assert publisher.of_type(CollaboratorAdded)[-1].reactivated is True

        rows = db_session.query(DocumentCollaborator).filter_by(
            document_id=document.id, user_id=student2.id
        ).all()
        assert len(rows) == 1

    def test_removed_collaborator_loses_access(
        self, collaborator_service, authorization, document, student, student2
    ):
        collaborator = collaborator_service.add_collaborator(
            document.id, student, student2.email, R.SECONDARY_STUDENT, P.READ_WRITE
        )
        collaborator_service.remove_collaborator(document.id, student, collaborator.id)

        assert authorization.has_access(student2, document) is False

    def test_primary_cannot_be_removed(self, db_session, collaborator_service, document, student, advisor):
        primary = binding(db_session, document, advisor)

        with pytest.raises(BusinessRuleError, match="cannot be removed"):
            collaborator_service.remove_collaborator(document.id, student, primary.id)

    def test_remove_unknown_collaborator(self, collaborator_service, document, student):
        with pytest.raises(NotFoundError):
            collaborator_service.remove_collaborator(document.id, student, uuid.uuid4())

    def test_remove_writes_audit_log(self, db_session, collaborator_service, document, student, student2):
        collaborator = collaborator_service.add_collaborator(
            document.id, student, student2.email, R.SECONDARY_STUDENT, P.READ_WRITE
        )
        collaborator_service.remove_collaborator(document.id, student, collaborator.id)

        entries = db_session.query(AuditLog).filter_by(entity_id=collaborator.id).all()
        assert {e.action for e in entries} == {"COLLABORATOR_ADDED", "COLLABORATOR_REMOVED"}
        removal = next(e for e in entries if e.action == "COLLABORATOR_REMOVED")
        assert removal.actor_id == student.id
        assert removal.metadata_json["role"] == "SECONDARY_STUDENT"

    def test_list_collaborators(self, collaborator_service, document, student, student2, outsider):
        collaborator = collaborator_service.add_collaborator(
            document.id, student, student2.email, R.SECONDARY_STUDENT, P.READ_WRITE
        )
        collaborator_service.remove_collaborator(document.id, student, collaborator.id)

        assert len(collaborator_service.list_collaborators(document.id, student)) == 2
        assert len(collaborator_service.list_collaborators(document.id, student, include_inactive=True)) == 3

        with pytest.raises(PermissionDeniedError):
            collaborator_service.list_collaborators(document.id, outsider)


class TestUpdateCollaborator:
    """Permission and role changes"""

    @pytest.fixture
    def secondary(self, collaborator_service, document, student, student2):
        return collaborator_service.add_collaborator(
            document.id, student, student2.email, R.SECONDARY_STUDENT, P.READ_WRITE
        )

    def test_update_permission(self, collaborator_service, secondary, student):
        updated = collaborator_service.update_permission(secondary.id, student, P.READ_COMMENT)
        assert updated.permission == P.READ_COMMENT

    def test_update_permission_wrong_document(self, collaborator_service, secondary, student):
        with pytest.raises(NotFoundError):
            collaborator_service.update_permission(
                secondary.id, student, P.READ_ONLY, document_id=uuid.uuid4()
            )

    def test_primary_permission_is_fixed(self, db_session, collaborator_service, document, student):
        primary = binding(db_session, document, student)
        with pytest.raises(BusinessRuleError):
            collaborator_service.update_permission(primary.id, student, P.READ_ONLY)

    def test_update_role_within_family(self, collaborator_service, secondary, student, publisher):
        updated = collaborator_service.update_role(secondary.id, student, R.CO_STUDENT)

        assert updated.role == R.CO_STUDENT
        event = publisher.of_type(CollaboratorRoleChanged)[-1]
        assert (event.old_role, event.new_role) == (R.SECONDARY_STUDENT, R.CO_STUDENT)

    def test_update_role_across_families(self, collaborator_service, secondary, student):
        with pytest.raises(BusinessRuleError, match="across"):
            collaborator_service.update_role(secondary.id, student, R.CO_ADVISOR)

    def test_update_role_to_primary_rejected(self, collaborator_service, secondary, student):
        with pytest.raises(BusinessRuleError, match="promotion"):
            collaborator_service.update_role(secondary.id, student, R.PRIMARY_STUDENT)

    def test_observer_downgrades_permission(self, collaborator_service, secondary, student):
        updated = collaborator_service.update_role(secondary.id, student, R.OBSERVER)

        assert updated.role == R.OBSERVER
        assert updated.permission == P.READ_ONLY

        with pytest.raises(BusinessRuleError):
            collaborator_service.update_permission(secondary.id, student, P.READ_WRITE)

    def test_update_requires_manage(self, collaborator_service, secondary, student2):
        with pytest.raises(PermissionDeniedError):
            collaborator_service.update_permission(secondary.id, student2, P.FULL_ACCESS)


class TestPromotion:
    """promote_to_primary swaps primaries atomically"""

    def test_promote_secondary_student(
        self, db_session, collaborator_service, authorization, document, student, student2,
        publisher, assert_primary_invariant,
    ):
        secondary = collaborator_service.add_collaborator(
            document.id, student, student2.email, R.SECONDARY_STUDENT, P.READ_WRITE
        )
        publisher.clear()

        promoted = collaborator_service.promote_to_primary(secondary.id, student)

        assert promoted.role == R.PRIMARY_STUDENT
        assert promoted.permission == P.FULL_ACCESS
        demoted = binding(db_session, document, student)
        assert demoted.role == R.SECONDARY_STUDENT
        assert demoted.permission == P.READ_WRITE
        assert demoted.active is True
        assert_primary_invariant(document.id)

        changes = publisher.of_type(CollaboratorRoleChanged)
        assert [(e.user_id, e.new_role) for e in changes] == [
            (student.id, R.SECONDARY_STUDENT),
            (student2.id, R.PRIMARY_STUDENT),
        ]

        reloaded = load_document(db_session, document.id)
        assert reloaded.primary_student_id == student2.id
        assert authorization.can_manage_collaborators(student, reloaded) is False
        assert authorization.can_delete_document(student2, reloaded) is True

    def test_promote_advisor(
        self, db_session, collaborator_service, document, advisor, advisor2, assert_primary_invariant
    ):
        co_advisor = collaborator_service.add_collaborator(
            document.id, advisor, advisor2.email, R.CO_ADVISOR, P.READ_COMMENT
        )

        collaborator_service.promote_to_primary(co_advisor.id, advisor)

        assert binding(db_session, document, advisor2).role == R.PRIMARY_ADVISOR
        assert binding(db_session, document, advisor).role == R.SECONDARY_ADVISOR
        assert_primary_invariant(document.id)

    def test_promote_when_no_primary_advisor(
        self, db_session, document_service, collaborator_service, student, advisor
    ):
        document = document_service.create_document(student, "Solo thesis")
        co_advisor = collaborator_service.add_collaborator(
            document.id, student, advisor.email, R.CO_ADVISOR, P.READ_WRITE
        )

        collaborator_service.promote_to_primary(co_advisor.id, student)

        assert binding(db_session, document, advisor).role == R.PRIMARY_ADVISOR

    def test_promote_already_primary(self, db_session, collaborator_service, document, student):
        with pytest.raises(BusinessRuleError, match="already"):
            collaborator_service.promote_to_primary(binding(db_session, document, student).id, student)

    def test_promote_non_family_role(self, collaborator_service, document, student, outsider):
        reviewer = collaborator_service.add_collaborator(
            document.id, student, outsider.email, R.REVIEWER, P.READ_ONLY
        )
        with pytest.raises(BusinessRuleError, match="cannot be promoted"):
            collaborator_service.promote_to_primary(reviewer.id, student)

    def test_promote_respects_secondary_capacity(
        self, db_session, collaborator_service, document, student, make_user, assert_primary_invariant
    ):
        """Test demotion into a full secondary slot is rejected unless the promoted one frees it"""
        secondaries = []
        for index in range(3):
            extra = make_user(f"student{index}@uni.edu", "STUDENT")
            secondaries.append(collaborator_service.add_collaborator(
                document.id, student, extra.email, R.SECONDARY_STUDENT, P.READ_WRITE
            ))
        co_author = make_user("coauthor@uni.edu", "STUDENT")
        co_student = collaborator_service.add_collaborator(
            document.id, student, co_author.email, R.CO_STUDENT, P.READ_WRITE
        )

        with pytest.raises(BusinessRuleError, match="Maximum"):
            collaborator_service.promote_to_primary(co_student.id, student)
        assert binding(db_session, document, student).role == R.PRIMARY_STUDENT

        collaborator_service.promote_to_primary(secondaries[0].id, student)
        assert binding(db_session, document, student).role == R.SECONDARY_STUDENT
        assert_primary_invariant(document.id)

    def test_failed_promotion_rolls_back_demotion(
        self, db_session, collaborator_service, document, student, student2, publisher,
        monkeypatch, assert_primary_invariant,
    ):
        """Test a write failure after the demotion leaves both bindings untouched"""
        secondary = collaborator_service.add_collaborator(
            document.id, student, student2.email, R.SECONDARY_STUDENT, P.READ_WRITE
        )
        publisher.clear()

        real_flush = db_session.flush
        calls = []

        def flaky_flush(*args, **kwargs):
            calls.append(1)
            if len(calls) == 2:
                raise IntegrityError("UPDATE document_collaborators", {}, Exception("unique violation"))
            return real_flush(*args, **kwargs)

        monkeypatch.setattr(db_session, "flush", flaky_flush)

        with pytest.raises(ConflictError):
            collaborator_service.promote_to_primary(secondary.id, student)
        monkeypatch.undo()

        assert len(calls) == 2
        original_primary = binding(db_session, document, student)
        assert original_primary.role == R.PRIMARY_STUDENT
        assert original_primary.permission == P.FULL_ACCESS
        untouched = binding(db_session, document, student2)
        assert untouched.role == R.SECONDARY_STUDENT
        assert untouched.permission == P.READ_WRITE
        assert publisher.of_type(CollaboratorRoleChanged) == []
        assert_primary_invariant(document.id)


class TestStorageConstraints:
    """The database backs up the registry rules"""

    def test_second_active_primary_is_a_conflict(self, db_session, document, student2, assert_primary_invariant):
        with pytest.raises(ConflictError):
            with transaction(db_session):
                db_session.add(DocumentCollaborator(
                    document_id=document.id,
                    user_id=student2.id,
                    role=R.PRIMARY_STUDENT,
                    permission=P.FULL_ACCESS,
                    active=True,
                ))

        assert_primary_invariant(document.id)

    def test_duplicate_user_row_is_a_conflict(self, db_session, document, student):
        with pytest.raises(ConflictError):
            with transaction(db_session):
                db_session.add(DocumentCollaborator(
                    document_id=document.id,
                    user_id=student.id,
                    role=R.OBSERVER,
                    permission=P.READ_ONLY,
                    active=False,
                ))
