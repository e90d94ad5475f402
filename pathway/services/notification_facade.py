"""Notification facade for domain services.

Workflow services call these event-style helpers after their transaction
commits, so they don't depend on message wording or dispatcher internals.
"""

from __future__ import annotations

from typing import Iterable
from uuid import UUID

from pathway.db.enums import NotificationKind
from pathway.services.notification_service import NotificationDispatcher


def notify_entry_request_resolved(
    dispatcher: NotificationDispatcher,
    applicant_id: UUID,
    organization_name: str,
    approved: bool,
) -> bool:
    if approved:
        return dispatcher.notify(
            applicant_id,
            "Entry request approved",
            f"Welcome to {organization_name}! You can now sign in.",
            NotificationKind.ENTRY_REQUEST_APPROVED,
        )
    return dispatcher.notify(
        applicant_id,
        "Entry request rejected",
        f"Your request to join {organization_name} was not approved.",
        NotificationKind.ENTRY_REQUEST_REJECTED,
    )


def notify_activity_returned(
    dispatcher: NotificationDispatcher,
    learner_ids: Iterable[UUID],
    activity_title: str,
) -> int:
    return dispatcher.notify_many(
        learner_ids,
        "Activity updated",
        f'The activity "{activity_title}" was edited. Please submit it again.',
        NotificationKind.ACTIVITY_RETURNED,
    )


def notify_submission_graded(
    dispatcher: NotificationDispatcher,
    learner_id: UUID,
    activity_title: str,
    score: float,
) -> bool:
    return dispatcher.notify(
        learner_id,
        "Submission graded",
        f'Your submission for "{activity_title}" received {score:g}/10.',
        NotificationKind.SUBMISSION_GRADED,
    )
