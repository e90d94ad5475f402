"""Admission workflow: registration, review scoping and the approval transaction."""

import uuid

import pytest

from pathway.db.enums import EntryRequestStatus, NotificationKind, Role
from pathway.db.models import EntryRequest, Member
from pathway.services import entry_request_service, member_service
from pathway.services.errors import (
    ConflictError,
    DuplicateEmailError,
    DuplicateRequestError,
    DuplicateSupervisorError,
    ForbiddenError,
    InvalidOrganizationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)

from conftest import FailingDispatcher, make_member, make_org, principal_for


def _register(db, org, role=Role.LEARNER, email=None):
    return entry_request_service.register_applicant(
        db,
        name="New Applicant",
        email=email or f"applicant-{uuid.uuid4().hex[:8]}@test.com",
        role=role,
        organization_id=org.id,
    )


# =============================================================================
# Registration
# =============================================================================


def test_register_creates_unapproved_member_with_open_request(db, test_org, supervisor):
    member, request = _register(db, test_org, email="New.Applicant@Example.com")

    assert member.is_approved is False
    assert member.organization_id is None
    assert member.email == "new.applicant@example.com"
    assert request.status == EntryRequestStatus.UNDER_REVIEW.value
    assert request.organization_id == test_org.id
    assert request.supervisor_id == supervisor.id


def test_register_without_supervisor_leaves_reviewer_empty(db, test_org):
    _, request = _register(db, test_org)

    assert request.supervisor_id is None


def test_register_rejects_inactive_organization_without_creating_member(db):
    inactive = make_org(db, name="Closed", is_active=False)

    with pytest.raises(InvalidOrganizationError):
        _register(db, inactive, email="nobody@test.com")

    assert member_service.get_member_by_email(db, "nobody@test.com") is None


def test_register_rejects_duplicate_email(db, test_org):
    _register(db, test_org, email="taken@test.com")

    with pytest.raises(DuplicateEmailError):
        _register(db, test_org, email="TAKEN@test.com")


def test_register_rejects_administrator_role(db, test_org):
    with pytest.raises(ValidationError) as exc_info:
        _register(db, test_org, role=Role.ADMINISTRATOR)

    assert exc_info.value.errors[0]["field"] == "role"


def test_register_second_supervisor_conflicts(db, test_org, supervisor):
    with pytest.raises(DuplicateSupervisorError):
        _register(db, test_org, role=Role.SUPERVISOR)


def test_second_open_request_for_applicant_conflicts(db, test_org, other_org):
    member, _ = _register(db, test_org)

    with pytest.raises(DuplicateRequestError):
        entry_request_service.submit_entry_request(db, member, other_org.id)

    open_requests = db.query(EntryRequest).filter(EntryRequest.applicant_id == member.id).all()
    assert len(open_requests) == 1


# =============================================================================
# Listing
# =============================================================================


def test_list_pending_requests_scoped_by_role(db, test_org, other_org, admin, supervisor, instructor):
    _register(db, test_org)
    _register(db, other_org)

    assert len(entry_request_service.list_pending_requests(db, principal_for(admin))) == 2

    scoped = entry_request_service.list_pending_requests(db, principal_for(supervisor))
    assert [r.organization_id for r in scoped] == [test_org.id]

    with pytest.raises(ForbiddenError):
        entry_request_service.list_pending_requests(db, principal_for(instructor))


def test_list_pending_requests_excludes_resolved(db, test_org, supervisor):
    _, request = _register(db, test_org)
    entry_request_service.reject_entry_request(db, principal_for(supervisor), request.id)

    assert entry_request_service.list_pending_requests(db, principal_for(supervisor)) == []


# =============================================================================
# Approval / rejection
# =============================================================================


def test_approve_binds_applicant_to_organization(db, test_org, supervisor, dispatcher):
    member, request = _register(db, test_org)

    approved = entry_request_service.approve_entry_request(
        db, principal_for(supervisor), request.id, dispatcher=dispatcher
    )

    applicant = db.get(Member, member.id)
    assert approved.status == EntryRequestStatus.APPROVED.value
    assert approved.reviewed_by_id == supervisor.id
    assert approved.reviewed_at is not None
    assert applicant.is_approved is True
    assert applicant.organization_id == request.organization_id
    assert [m.kind for m in dispatcher.sent] == [NotificationKind.ENTRY_REQUEST_APPROVED]
    assert dispatcher.sent[0].member_id == member.id


def test_admin_can_approve_any_organization(db, other_org, admin):
    member, request = _register(db, other_org)

    entry_request_service.approve_entry_request(db, principal_for(admin), request.id)

    assert db.get(Member, member.id).organization_id == other_org.id


def test_supervisor_of_other_organization_cannot_approve(db, test_org, other_org):
    foreign_supervisor = make_member(db, Role.SUPERVISOR, other_org)
    member, request = _register(db, test_org)

    with pytest.raises(ForbiddenError):
        entry_request_service.approve_entry_request(
            db, principal_for(foreign_supervisor), request.id
        )
    db.rollback()

    assert db.get(EntryRequest, request.id).status == EntryRequestStatus.UNDER_REVIEW.value
    assert db.get(Member, member.id).is_approved is False


def test_non_reviewer_roles_cannot_approve(db, test_org, instructor):
    _, request = _register(db, test_org)

    with pytest.raises(ForbiddenError):
        entry_request_service.approve_entry_request(db, principal_for(instructor), request.id)


def test_approve_missing_request_is_not_found(db, admin):
    with pytest.raises(NotFoundError):
        entry_request_service.approve_entry_request(db, principal_for(admin), uuid.uuid4())


def test_resolved_request_cannot_transition_again(db, test_org, supervisor):
    _, request = _register(db, test_org)
    entry_request_service.approve_entry_request(db, principal_for(supervisor), request.id)

    with pytest.raises(InvalidTransitionError):
        entry_request_service.approve_entry_request(db, principal_for(supervisor), request.id)
    db.rollback()
    with pytest.raises(InvalidTransitionError):
        entry_request_service.reject_entry_request(db, principal_for(supervisor), request.id)


def test_approving_supervisor_into_supervised_organization_conflicts(db, test_org, admin):
    applicant, request = _register(db, test_org, role=Role.SUPERVISOR)
    make_member(db, Role.SUPERVISOR, test_org)

    with pytest.raises(DuplicateSupervisorError):
        entry_request_service.approve_entry_request(db, principal_for(admin), request.id)
    db.rollback()

    assert db.get(Member, applicant.id).is_approved is False
    assert db.get(EntryRequest, request.id).status == EntryRequestStatus.UNDER_REVIEW.value


def test_reject_keeps_applicant_unapproved_and_survives_push_failure(db, test_org, supervisor):
    member, request = _register(db, test_org)
    failing = FailingDispatcher()

    rejected = entry_request_service.reject_entry_request(
        db, principal_for(supervisor), request.id, dispatcher=failing
    )

    assert rejected.status == EntryRequestStatus.REJECTED.value
    assert failing.attempts == 1
    applicant = db.get(Member, member.id)
    assert applicant.is_approved is False
    assert applicant.organization_id is None


def test_rejected_applicant_can_apply_again(db, test_org, other_org, supervisor):
    member, request = _register(db, test_org)
    entry_request_service.reject_entry_request(db, principal_for(supervisor), request.id)

    again = entry_request_service.submit_entry_request(db, member, other_org.id)
    db.commit()

    assert again.status == EntryRequestStatus.UNDER_REVIEW.value


def test_reapply_by_email_after_rejection(db, test_org, supervisor):
    member, request = _register(db, test_org, email="again@test.com")
    entry_request_service.reject_entry_request(db, principal_for(supervisor), request.id)

    again = entry_request_service.reapply(db, email="Again@Test.com", organization_id=test_org.id)

    assert again.id != request.id
    assert again.applicant_id == member.id
    assert again.status == EntryRequestStatus.UNDER_REVIEW.value
    assert again.supervisor_id == supervisor.id

    with pytest.raises(DuplicateRequestError):
        entry_request_service.reapply(db, email="again@test.com", organization_id=test_org.id)


def test_reapply_rules(db, test_org, other_org, supervisor, learner):
    with pytest.raises(NotFoundError):
        entry_request_service.reapply(db, email="nobody@test.com", organization_id=test_org.id)
    with pytest.raises(ConflictError):
        entry_request_service.reapply(db, email=learner.email, organization_id=other_org.id)

    disabled = make_member(db, Role.LEARNER, None, is_approved=False, is_active=False)
    with pytest.raises(ForbiddenError):
        entry_request_service.reapply(db, email=disabled.email, organization_id=test_org.id)

    applicant = make_member(db, Role.LEARNER, None, is_approved=False)
    inactive_org = make_org(db, name="Closed", is_active=False)
    with pytest.raises(InvalidOrganizationError):
        entry_request_service.reapply(db, email=applicant.email, organization_id=inactive_org.id)

    would_be_supervisor = make_member(db, Role.SUPERVISOR, None, is_approved=False)
    with pytest.raises(DuplicateSupervisorError):
        entry_request_service.reapply(
            db, email=would_be_supervisor.email, organization_id=test_org.id
        )
