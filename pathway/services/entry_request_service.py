"""Service for entry requests (admission approval workflow)."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from pathway.db.enums import (
    DEFAULT_LEARNER_PHASE,
    ROLES_CAN_REVIEW_REQUESTS,
    EntryRequestStatus,
    Role,
)
from pathway.db.models import EntryRequest, Member, Organization
from pathway.schemas.auth import Principal
from pathway.services import member_service, notification_facade, organization_service
from pathway.services.errors import (
    ConflictError,
    DuplicateRequestError,
    DuplicateSupervisorError,
    ForbiddenError,
    InvalidOrganizationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from pathway.services.notification_service import NotificationDispatcher


logger = logging.getLogger(__name__)


def get_request(db: Session, request_id: UUID, lock: bool = False) -> EntryRequest | None:
    """Get an entry request by ID."""
    query = select(EntryRequest).where(EntryRequest.id == request_id)
    if lock:
        query = query.with_for_update()
    return db.execute(query).scalar_one_or_none()


def get_open_request(db: Session, applicant_id: UUID) -> EntryRequest | None:
    """The applicant's request still under review, if any."""
    return (
        db.query(EntryRequest)
        .filter(
            EntryRequest.applicant_id == applicant_id,
            EntryRequest.status == EntryRequestStatus.UNDER_REVIEW.value,
        )
        .first()
    )


def submit_entry_request(
    db: Session,
    applicant: Member,
    organization_id: UUID,
) -> EntryRequest:
    """
    Create an UNDER_REVIEW request for the applicant to join an organization.

    The organization's active supervisor, if any, is nominated as reviewer.
    Flushes but does not commit, so registration can keep account and
    request creation in one transaction.

    Raises:
        InvalidOrganizationError: organization missing or inactive
        DuplicateRequestError: applicant already has a request under review
    """
    organization = organization_service.get_active_organization(db, organization_id)

    # Serialize concurrent submissions for the same applicant
    db.execute(select(Member).where(Member.id == applicant.id).with_for_update())

    if get_open_request(db, applicant.id):
        raise DuplicateRequestError("A pending request already exists for this member")

    supervisor = member_service.get_active_supervisor(db, organization.id)
    request = EntryRequest(
        applicant_id=applicant.id,
        organization_id=organization.id,
        supervisor_id=supervisor.id if supervisor else None,
        status=EntryRequestStatus.UNDER_REVIEW.value,
    )
    db.add(request)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise DuplicateRequestError("A pending request already exists for this member")
    return request


def register_applicant(
    db: Session,
    *,
    name: str,
    email: str,
    role: Role,
    organization_id: UUID,
) -> tuple[Member, EntryRequest]:
    """
    Create an unapproved account and its entry request atomically.

    The account is not bound to the organization until the request is
    approved.

    Raises:
        ValidationError: administrator accounts cannot self-register
        InvalidOrganizationError, DuplicateEmailError, DuplicateSupervisorError,
        DuplicateRequestError
    """
    if role == Role.ADMINISTRATOR:
        raise ValidationError.for_fields({"role": "Administrators cannot self-register"})

    organization_service.get_active_organization(db, organization_id, lock=True)
    if role == Role.SUPERVISOR:
        member_service.ensure_no_active_supervisor(db, organization_id)
    member_service.ensure_email_available(db, email)

    applicant = Member(
        name=name.strip(),
        email=member_service.normalize_email(email),
        role=role.value,
        organization_id=None,
        phase=DEFAULT_LEARNER_PHASE,
        is_active=True,
        is_approved=False,
    )
    db.add(applicant)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        member_service.ensure_email_available(db, email)
        raise

    request = submit_entry_request(db, applicant, organization_id)
    db.commit()
    db.refresh(applicant)
    db.refresh(request)
    logger.info("Applicant %s registered for organization %s", applicant.id, organization_id)
    return applicant, request


def reapply(db: Session, *, email: str, organization_id: UUID) -> EntryRequest:
    """
    Submit a new entry request for an existing, not yet approved account.

    Used after a rejection; the account keeps its identity and role.

    Raises:
        NotFoundError: no account with this email
        ForbiddenError: account disabled
        ConflictError: account already approved
        InvalidOrganizationError, DuplicateSupervisorError, DuplicateRequestError
    """
    applicant = member_service.get_member_by_email(db, email)
    if not applicant:
        raise NotFoundError("No account is registered with this email")
    if not applicant.is_active:
        raise ForbiddenError("Account disabled")
    if applicant.is_approved:
        raise ConflictError("This account already belongs to an organization")

    organization_service.get_active_organization(db, organization_id, lock=True)
    if applicant.role == Role.SUPERVISOR.value:
        member_service.ensure_no_active_supervisor(db, organization_id)

    request = submit_entry_request(db, applicant, organization_id)
    db.commit()
    db.refresh(request)
    logger.info("Applicant %s re-applied to organization %s", applicant.id, organization_id)
    return request


def list_pending_requests(db: Session, principal: Principal) -> list[EntryRequest]:
    """
    List requests under review visible to the caller.

    Administrators see every organization; supervisors only their own.
    """
    query = (
        select(EntryRequest)
        .where(EntryRequest.status == EntryRequestStatus.UNDER_REVIEW.value)
        .options(
            selectinload(EntryRequest.applicant),
            selectinload(EntryRequest.organization),
            selectinload(EntryRequest.supervisor),
        )
        .order_by(EntryRequest.created_at.desc())
    )

    if principal.role == Role.ADMINISTRATOR:
        pass
    elif principal.role == Role.SUPERVISOR:
        if principal.organization_id is None:
            return []
        query = query.where(EntryRequest.organization_id == principal.organization_id)
    else:
        raise ForbiddenError("Access denied")

    return list(db.execute(query).scalars().all())


def _load_for_review(db: Session, principal: Principal, request_id: UUID) -> EntryRequest:
    """Lock the request and check the caller may review it."""
    if principal.role not in ROLES_CAN_REVIEW_REQUESTS:
        raise ForbiddenError("Access denied")

    request = get_request(db, request_id, lock=True)
    if not request:
        raise NotFoundError("Request not found")

    if principal.role == Role.SUPERVISOR and request.organization_id != principal.organization_id:
        raise ForbiddenError("Access denied to this request")

    if request.status != EntryRequestStatus.UNDER_REVIEW.value:
        raise InvalidTransitionError(f"Request is not under review (status: {request.status})")

    return request


def approve_entry_request(
    db: Session,
    principal: Principal,
    request_id: UUID,
    dispatcher: NotificationDispatcher | None = None,
) -> EntryRequest:
    """
    Approve a request under review.

    Marks the request APPROVED, and the applicant approved and bound to the
    organization, in one commit.

    Raises:
        ForbiddenError: caller is not an administrator or the organization's supervisor
        NotFoundError: request missing
        InvalidTransitionError: request already approved or rejected
        DuplicateSupervisorError: supervisor applicant for an organization that has one
    """
    request = _load_for_review(db, principal, request_id)

    organization = db.execute(
        select(Organization).where(Organization.id == request.organization_id).with_for_update()
    ).scalar_one()
    if not organization.is_active:
        raise InvalidOrganizationError("Organization is inactive")

    applicant = db.execute(
        select(Member).where(Member.id == request.applicant_id).with_for_update()
    ).scalar_one()
    if applicant.role == Role.SUPERVISOR.value:
        member_service.ensure_no_active_supervisor(
            db, organization.id, exclude_member_id=applicant.id
        )

    now = datetime.now(timezone.utc)
    request.status = EntryRequestStatus.APPROVED.value
    request.reviewed_by_id = principal.member_id
    request.reviewed_at = now
    applicant.is_approved = True
    applicant.organization_id = request.organization_id

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateSupervisorError("This organization already has a supervisor")
    db.refresh(request)

    logger.info(
        "Entry request %s approved by %s; member %s joined organization %s",
        request.id,
        principal.member_id,
        applicant.id,
        organization.id,
    )

    if dispatcher:
        notification_facade.notify_entry_request_resolved(
            dispatcher, applicant.id, organization.name, approved=True
        )

    return request


def reject_entry_request(
    db: Session,
    principal: Principal,
    request_id: UUID,
    dispatcher: NotificationDispatcher | None = None,
) -> EntryRequest:
    """
    Reject a request under review. The applicant stays unapproved.

    Same authorization and terminality rules as approval.
    """
    request = _load_for_review(db, principal, request_id)

    request.status = EntryRequestStatus.REJECTED.value
    request.reviewed_by_id = principal.member_id
    request.reviewed_at = datetime.now(timezone.utc)

    db.commit()
    db.refresh(request)

    logger.info("Entry request %s rejected by %s", request.id, principal.member_id)

    if dispatcher:
        notification_facade.notify_entry_request_resolved(
            dispatcher, request.applicant_id, request.organization.name, approved=False
        )

    return request
