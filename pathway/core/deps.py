"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator
from uuid import UUID

from fastapi import BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from pathway.core.security import decode_access_token
from pathway.db.enums import Role
from pathway.db.models import Member
from pathway.db.session import SessionLocal
from pathway.schemas.auth import Principal
from pathway.services.notification_service import (
    BackgroundDispatcher,
    NotificationDispatcher,
    get_dispatcher,
)


BEARER_PREFIX = "bearer "


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    if not header:
        raise HTTPException(status_code=401, detail="Token not provided")
    if not header.lower().startswith(BEARER_PREFIX):
        raise HTTPException(status_code=401, detail="Malformed token")
    token = header[len(BEARER_PREFIX):].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Malformed token")
    return token


def get_current_principal(
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Get the authenticated principal from the bearer token.

    Validates:
    - Authorization header carries a bearer token
    - JWT is valid and not expired
    - Member exists, is active and approved

    Role, organization and phase are read from the member row so that
    approvals and phase changes apply without re-issuing tokens.

    Raises:
        HTTPException 401: Authentication failed
    """
    token = _bearer_token(request)
    try:
        payload = decode_access_token(token)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid token")

    try:
        member_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token")

    member = db.query(Member).filter(Member.id == member_id).first()
    if not member:
        raise HTTPException(status_code=401, detail="Member not found")

    if not member.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")

    if not member.is_approved:
        raise HTTPException(status_code=401, detail="Entry request not approved yet")

    if not Role.has_value(member.role):
        raise HTTPException(status_code=403, detail=f"Unknown role '{member.role}'")

    role = Role(member.role)
    # Picked up by the request-logging middleware
    request.state.member_id = str(member.id)
    request.state.org_id = str(member.organization_id) if member.organization_id else None

    return Principal(
        member_id=member.id,
        name=member.name,
        email=member.email,
        role=role,
        organization_id=member.organization_id,
        phase=member.phase if role == Role.LEARNER else None,
    )


def require_roles(allowed_roles: list):
    """
    Dependency factory for role-based authorization.

    Usage:
        @router.post("", dependencies=[Depends(require_roles([Role.SUPERVISOR]))])
    """
    def dependency(request: Request, db: Session = Depends(get_db)):
        principal = get_current_principal(request, db)
        if principal.role not in allowed_roles:
            raise HTTPException(
                status_code=403,
                detail=f"Role '{principal.role.value}' not authorized for this action",
            )
        return principal
    return dependency


def get_push_dispatcher(
    background_tasks: BackgroundTasks,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> NotificationDispatcher:
    """Dispatcher whose pushes run after the response is sent."""
    return BackgroundDispatcher(dispatcher, background_tasks)
