"""Staff-initiated pushes to members."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from pathway.db.enums import ROLES_CAN_PUSH, NotificationKind, Role
from pathway.db.models import Member
from pathway.schemas.auth import Principal
from pathway.services.errors import ForbiddenError, NotFoundError
from pathway.services.notification_service import NotificationDispatcher


logger = logging.getLogger(__name__)


def _resolve_recipients(db: Session, principal: Principal, member_ids: list[UUID]) -> list[UUID]:
    """
    Check every recipient exists and is in the caller's scope.

    Administrators reach any member; supervisors and instructors only
    members of their own organization.
    """
    if principal.role not in ROLES_CAN_PUSH:
        raise ForbiddenError("Access denied")

    wanted = list(dict.fromkeys(member_ids))
    members = {
        member.id: member
        for member in db.execute(select(Member).where(Member.id.in_(wanted))).scalars()
    }
    missing = [member_id for member_id in wanted if member_id not in members]
    if missing:
        raise NotFoundError(f"Member not found: {missing[0]}")

    if principal.role != Role.ADMINISTRATOR:
        for member in members.values():
            if member.organization_id != principal.organization_id:
                raise ForbiddenError("Members outside your organization cannot be notified")
    return wanted


def send_push(
    db: Session,
    principal: Principal,
    member_ids: list[UUID],
    title: str,
    body: str,
    kind: NotificationKind = NotificationKind.GENERAL,
    dispatcher: NotificationDispatcher | None = None,
) -> int:
    """
    Push the same message to each member (duplicates collapse).

    Returns how many messages the dispatcher accepted.

    Raises:
        ForbiddenError: caller may not push, or a recipient is out of scope
        NotFoundError: a recipient does not exist
    """
    recipients = _resolve_recipients(db, principal, member_ids)
    if dispatcher is None:
        return 0

    accepted = dispatcher.notify_many(recipients, title, body, kind)
    logger.info(
        "Member %s pushed %s to %d member(s)", principal.member_id, kind.value, len(recipients)
    )
    return accepted
