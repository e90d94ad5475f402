"""Entry request endpoints - applying for admission and review by supervisors and administrators."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from pathway.core.deps import get_db, get_push_dispatcher, require_roles
from pathway.core.rate_limit import AUTH_LIMIT, limiter
from pathway.db.enums import Role
from pathway.schemas.auth import Principal
from pathway.schemas.entry_request import EntryRequestCreate, EntryRequestRead, RegisterResponse
from pathway.services import entry_request_service
from pathway.services.notification_service import NotificationDispatcher


router = APIRouter()

REVIEWERS = [Role.ADMINISTRATOR, Role.SUPERVISOR]


@router.get("", response_model=list[EntryRequestRead])
def list_pending_requests(
    principal: Principal = Depends(require_roles(REVIEWERS)),
    db: Session = Depends(get_db),
):
    """List requests under review, scoped to the supervisor's organization."""
    return entry_request_service.list_pending_requests(db, principal)


@router.post("", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_LIMIT)
def create_request(
    request: Request,
    data: EntryRequestCreate,
    db: Session = Depends(get_db),
):
    """
    Apply again with an existing account, e.g. after a rejection.

    Unauthenticated: the account cannot sign in until approved.
    """
    entry_request = entry_request_service.reapply(
        db, email=data.email, organization_id=data.organization_id
    )
    return RegisterResponse(
        member_id=entry_request.applicant_id,
        request_id=entry_request.id,
        status=entry_request.status,
    )


@router.post("/{request_id}/approve", response_model=EntryRequestRead)
def approve_request(
    request_id: UUID,
    principal: Principal = Depends(require_roles(REVIEWERS)),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_push_dispatcher),
):
    """Approve a request; the applicant joins the organization."""
    return entry_request_service.approve_entry_request(
        db, principal, request_id, dispatcher=dispatcher
    )


@router.post("/{request_id}/reject", response_model=EntryRequestRead)
def reject_request(
    request_id: UUID,
    principal: Principal = Depends(require_roles(REVIEWERS)),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_push_dispatcher),
):
    """Reject a request; the applicant stays unapproved."""
    return entry_request_service.reject_entry_request(
        db, principal, request_id, dispatcher=dispatcher
    )
