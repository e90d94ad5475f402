"""Member provisioning, phase moves and the single-supervisor invariant."""

import pytest

from pathway.db.enums import Role
from pathway.db.models import Member
from pathway.services import member_service
from pathway.services.errors import (
    DuplicateEmailError,
    DuplicateSupervisorError,
    ForbiddenError,
    InvalidOrganizationError,
    ValidationError,
)

from conftest import make_member, make_org, principal_for


def _create(db, catalog, role, org, **kwargs):
    return member_service.create_member(
        db,
        catalog,
        name=kwargs.pop("name", "Provisioned Member"),
        email=kwargs.pop("email", f"{role.value}@provisioned.test"),
        role=role,
        organization_id=org.id if org else None,
        **kwargs,
    )


def test_create_member_is_approved(db, catalog, test_org):
    member = _create(db, catalog, Role.INSTRUCTOR, test_org)

    assert member.is_approved is True
    assert member.is_active is True
    assert member.organization_id == test_org.id


def test_create_second_supervisor_conflicts(db, catalog, test_org, supervisor):
    with pytest.raises(DuplicateSupervisorError):
        _create(db, catalog, Role.SUPERVISOR, test_org)


def test_supervisors_of_different_organizations_coexist(db, catalog, test_org, other_org, supervisor):
    second = _create(db, catalog, Role.SUPERVISOR, other_org)

    assert second.organization_id == other_org.id


def test_create_member_requires_organization_for_non_admin(db, catalog):
    with pytest.raises(ValidationError) as exc_info:
        _create(db, catalog, Role.LEARNER, None)

    assert exc_info.value.errors == [
        {"field": "organization_id", "message": "Organization is required for this role"}
    ]


def test_create_learner_with_unknown_phase_fails(db, catalog, test_org):
    with pytest.raises(ValidationError):
        _create(db, catalog, Role.LEARNER, test_org, phase="9")


def test_create_member_in_inactive_organization_fails(db, catalog):
    inactive = make_org(db, name="Closed", is_active=False)

    with pytest.raises(InvalidOrganizationError):
        _create(db, catalog, Role.INSTRUCTOR, inactive)


def test_create_member_duplicate_email(db, catalog, test_org):
    _create(db, catalog, Role.INSTRUCTOR, test_org, email="dup@test.com")

    with pytest.raises(DuplicateEmailError):
        _create(db, catalog, Role.LEARNER, test_org, email="Dup@Test.com")


def test_set_phase_by_supervisor_of_same_organization(db, catalog, supervisor, learner):
    updated = member_service.set_phase(db, catalog, principal_for(supervisor), learner.id, "2")

    assert updated.phase == "2"


def test_set_phase_rejects_phase_outside_catalog(db, catalog, admin, learner):
    with pytest.raises(ValidationError):
        member_service.set_phase(db, catalog, principal_for(admin), learner.id, "7")


def test_set_phase_by_foreign_supervisor_is_forbidden(db, catalog, other_org, learner):
    foreign = make_member(db, Role.SUPERVISOR, other_org)

    with pytest.raises(ForbiddenError):
        member_service.set_phase(db, catalog, principal_for(foreign), learner.id, "2")


def test_reactivating_supervisor_respects_uniqueness(db, test_org, supervisor):
    member_service.set_active(db, supervisor.id, False)
    replacement = make_member(db, Role.SUPERVISOR, test_org)

    with pytest.raises(DuplicateSupervisorError):
        member_service.set_active(db, supervisor.id, True)
    db.rollback()

    assert db.get(Member, supervisor.id).is_active is False
    assert db.get(Member, replacement.id).is_active is True
