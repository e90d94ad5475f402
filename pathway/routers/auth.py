"""Authentication endpoints: self-service registration and current profile."""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from pathway.core.deps import get_current_principal, get_db
from pathway.core.rate_limit import AUTH_LIMIT, limiter
from pathway.db.models import Organization
from pathway.schemas.auth import MeResponse, Principal, RegisterRequest
from pathway.schemas.entry_request import RegisterResponse
from pathway.services import entry_request_service


router = APIRouter()


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_LIMIT)
def register(
    request: Request,
    data: RegisterRequest,
    db: Session = Depends(get_db),
):
    """
    Create an account and its entry request.

    The account cannot sign in until a supervisor or administrator
    approves the request.
    """
    member, entry_request = entry_request_service.register_applicant(
        db,
        name=data.name,
        email=data.email,
        role=data.role,
        organization_id=data.organization_id,
    )
    return RegisterResponse(
        member_id=member.id,
        request_id=entry_request.id,
        status=entry_request.status,
    )


@router.get("/me", response_model=MeResponse)
def get_me(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Get the authenticated member's profile."""
    organization = (
        db.get(Organization, principal.organization_id) if principal.organization_id else None
    )
    return MeResponse(
        member_id=principal.member_id,
        name=principal.name,
        email=principal.email,
        role=principal.role,
        organization_id=principal.organization_id,
        organization_name=organization.name if organization else None,
        phase=principal.phase,
    )
