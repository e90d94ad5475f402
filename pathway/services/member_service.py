"""Member service - account lookups, staff provisioning and the single-supervisor rule."""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pathway.db.enums import DEFAULT_LEARNER_PHASE, Role
from pathway.db.models import Member, Organization
from pathway.schemas.auth import Principal
from pathway.schemas.catalog import Catalog
from pathway.services import organization_service
from pathway.services.errors import (
    ConflictError,
    DuplicateEmailError,
    DuplicateSupervisorError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)


logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.lower().strip()


def get_member(db: Session, member_id: UUID) -> Member | None:
    return db.get(Member, member_id)


def get_member_by_email(db: Session, email: str) -> Member | None:
    return (
        db.query(Member)
        .filter(func.lower(Member.email) == normalize_email(email))
        .first()
    )


def get_active_supervisor(
    db: Session,
    org_id: UUID,
    exclude_member_id: UUID | None = None,
) -> Member | None:
    """The organization's active, approved supervisor, if any."""
    query = db.query(Member).filter(
        Member.organization_id == org_id,
        Member.role == Role.SUPERVISOR.value,
        Member.is_active.is_(True),
        Member.is_approved.is_(True),
    )
    if exclude_member_id:
        query = query.filter(Member.id != exclude_member_id)
    return query.first()


def ensure_no_active_supervisor(
    db: Session,
    org_id: UUID,
    exclude_member_id: UUID | None = None,
) -> None:
    """
    Enforce at most one active, approved supervisor per organization.

    Callers lock the organization row first so concurrent checks serialize.
    """
    if get_active_supervisor(db, org_id, exclude_member_id=exclude_member_id):
        raise DuplicateSupervisorError("This organization already has a supervisor")


def ensure_email_available(db: Session, email: str) -> None:
    if get_member_by_email(db, email):
        raise DuplicateEmailError(
            "This email is already registered",
            errors=[{"field": "email", "message": "This email is already registered"}],
        )


def create_member(
    db: Session,
    catalog: Catalog,
    *,
    name: str,
    email: str,
    role: Role,
    organization_id: UUID | None = None,
    phase: str = DEFAULT_LEARNER_PHASE,
) -> Member:
    """
    Provision an approved account (administrator action).

    Raises:
        ValidationError: missing organization for a non-administrator, or unknown phase
        InvalidOrganizationError: organization missing or inactive
        DuplicateEmailError / DuplicateSupervisorError
    """
    errors: dict[str, str] = {}
    if role != Role.ADMINISTRATOR and organization_id is None:
        errors["organization_id"] = "Organization is required for this role"
    if role == Role.LEARNER and phase not in catalog.phase_ids:
        errors["phase"] = "Phase must be a curriculum phase"
    if errors:
        raise ValidationError.for_fields(errors)

    if organization_id is not None:
        organization_service.get_active_organization(db, organization_id, lock=True)
        if role == Role.SUPERVISOR:
            ensure_no_active_supervisor(db, organization_id)
    ensure_email_available(db, email)

    member = Member(
        name=name.strip(),
        email=normalize_email(email),
        role=role.value,
        organization_id=organization_id,
        phase=phase if role == Role.LEARNER else DEFAULT_LEARNER_PHASE,
        is_active=True,
        is_approved=True,
    )
    db.add(member)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Member conflicts with an existing account")
    db.refresh(member)
    logger.info("Member %s provisioned with role %s", member.id, member.role)
    return member


def set_phase(
    db: Session,
    catalog: Catalog,
    principal: Principal,
    member_id: UUID,
    phase: str,
) -> Member:
    """Move a learner to another curriculum phase."""
    member = get_member(db, member_id)
    if not member:
        raise NotFoundError("Member not found")

    if principal.role == Role.ADMINISTRATOR:
        pass
    elif principal.role == Role.SUPERVISOR and principal.organization_id == member.organization_id:
        pass
    else:
        raise ForbiddenError("Access denied")

    if member.role != Role.LEARNER.value:
        raise ValidationError.for_fields({"phase": "Only learners have a phase"})
    if phase not in catalog.phase_ids:
        raise ValidationError.for_fields({"phase": "Phase must be a curriculum phase"})

    member.phase = phase
    db.commit()
    db.refresh(member)
    logger.info("Member %s moved to phase %s", member.id, phase)
    return member


def set_active(db: Session, member_id: UUID, is_active: bool) -> Member:
    """Activate or deactivate an account. Reactivating a supervisor re-checks uniqueness."""
    member = db.execute(
        select(Member).where(Member.id == member_id).with_for_update()
    ).scalar_one_or_none()
    if not member:
        raise NotFoundError("Member not found")

    if (
        is_active
        and not member.is_active
        and member.role == Role.SUPERVISOR.value
        and member.is_approved
        and member.organization_id
    ):
        db.execute(
            select(Organization).where(Organization.id == member.organization_id).with_for_update()
        )
        ensure_no_active_supervisor(db, member.organization_id, exclude_member_id=member.id)

    member.is_active = is_active
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateSupervisorError("This organization already has a supervisor")
    db.refresh(member)
    logger.info("Member %s %s", member.id, "activated" if is_active else "deactivated")
    return member
