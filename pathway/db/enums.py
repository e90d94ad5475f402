"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """
    Member roles.

    - ADMINISTRATOR: Platform admin, not bound to an organization
    - INSTRUCTOR: Grades submissions across an organization
    - SUPERVISOR: Authors activities and approves entry requests (one per organization)
    - LEARNER: Assigned a phase; consumes activities and submits work
    """
    ADMINISTRATOR = "administrator"
    INSTRUCTOR = "instructor"
    SUPERVISOR = "supervisor"
    LEARNER = "learner"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class EntryRequestStatus(str, Enum):
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class ActivityType(str, Enum):
    QUIZ = "quiz"
    TEXT = "text"
    PDF = "pdf"


class SubmissionStatus(str, Enum):
    """
    Submission lifecycle.

    PENDING -> GRADED; any -> RETURNED when the parent activity is edited.
    A RETURNED submission is deleted when the learner submits again.
    """
    PENDING = "pending"
    GRADED = "graded"
    RETURNED = "returned"


class NotificationKind(str, Enum):
    ENTRY_REQUEST_APPROVED = "entry_request_approved"
    ENTRY_REQUEST_REJECTED = "entry_request_rejected"
    ACTIVITY_RETURNED = "activity_returned"
    SUBMISSION_GRADED = "submission_graded"
    GENERAL = "general"


# Phase numbers an activity may target
MIN_PHASE = 1
MAX_PHASE = 16

DEFAULT_LEARNER_PHASE = "1"

# Scores assigned to submissions are in [0, MAX_SCORE]
MAX_SCORE = 10

# Roles allowed to review entry requests
ROLES_CAN_REVIEW_REQUESTS = {Role.ADMINISTRATOR, Role.SUPERVISOR}

# Roles allowed to grade submissions
ROLES_CAN_GRADE = {Role.INSTRUCTOR, Role.SUPERVISOR}

# Roles that see other members' progress within their organization
ROLES_STAFF = {Role.INSTRUCTOR, Role.SUPERVISOR}

# Roles allowed to send pushes to members directly
ROLES_CAN_PUSH = {Role.ADMINISTRATOR, Role.INSTRUCTOR, Role.SUPERVISOR}
