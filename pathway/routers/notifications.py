"""
Notifications Router - /notifications endpoints.

Staff send push messages to members directly. Delivery runs after the
response is sent, so results count accepted messages.
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from pathway.core.deps import get_db, get_push_dispatcher, require_roles
from pathway.db.enums import NotificationKind, Role
from pathway.schemas.auth import Principal
from pathway.services import push_service
from pathway.services.notification_service import NotificationDispatcher


router = APIRouter()

SENDERS = [Role.ADMINISTRATOR, Role.SUPERVISOR, Role.INSTRUCTOR]


# =============================================================================
# Schemas
# =============================================================================


class PushRequest(BaseModel):
    """Push to one member."""
    member_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    kind: NotificationKind = NotificationKind.GENERAL


class BulkPushRequest(BaseModel):
    """Push the same message to several members."""
    member_ids: list[UUID] = Field(..., min_length=1, max_length=500)
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    kind: NotificationKind = NotificationKind.GENERAL


class PushResponse(BaseModel):
    message: str
    accepted: int


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/push", response_model=PushResponse)
def push(
    data: PushRequest,
    principal: Principal = Depends(require_roles(SENDERS)),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_push_dispatcher),
):
    """Send a push to one member."""
    accepted = push_service.send_push(
        db,
        principal,
        [data.member_id],
        data.title,
        data.message,
        kind=data.kind,
        dispatcher=dispatcher,
    )
    return PushResponse(message="Notification queued", accepted=accepted)


@router.post("/push/bulk", response_model=PushResponse)
def push_bulk(
    data: BulkPushRequest,
    principal: Principal = Depends(require_roles(SENDERS)),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_push_dispatcher),
):
    """Send the same push to several members."""
    accepted = push_service.send_push(
        db,
        principal,
        data.member_ids,
        data.title,
        data.message,
        kind=data.kind,
        dispatcher=dispatcher,
    )
    return PushResponse(message=f"Notifications queued for {accepted} members", accepted=accepted)
