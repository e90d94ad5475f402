"""
Activity Workflow - authoring, scoped distribution, editing and retirement
of graded assignments.

Editing an activity returns every existing submission to its learner;
notifications for that fan-out are sent only after the commit.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from pathway.db.enums import MAX_PHASE, MIN_PHASE, ActivityType, Role, SubmissionStatus
from pathway.db.models import Activity, ActivityPhase, Question, Submission
from pathway.schemas.auth import Principal
from pathway.services import notification_facade
from pathway.services.errors import (
    ForbiddenError,
    HasSubmissionsError,
    NotFoundError,
    ValidationError,
)
from pathway.services.notification_service import NotificationDispatcher


logger = logging.getLogger(__name__)


# =============================================================================
# Validation
# =============================================================================


def _validate_phases(phases: list[int] | None) -> list[int]:
    """Return the distinct phase numbers, sorted. All must lie in 1..16."""
    if not phases:
        raise ValidationError.for_fields({"phases": "At least one phase is required"})
    invalid = [p for p in phases if p < MIN_PHASE or p > MAX_PHASE]
    if invalid:
        raise ValidationError.for_fields(
            {"phases": f"Phases must be between {MIN_PHASE} and {MAX_PHASE}"}
        )
    return sorted(set(phases))


def _validate_questions(questions: list[dict] | None) -> list[dict]:
    """
    Check a quiz question set.

    Each question needs a prompt, at least two options, and a correct
    option that is one of them.
    """
    if not questions:
        raise ValidationError.for_fields({"questions": "Quiz activities require questions"})

    errors: dict[str, str] = {}
    for index, question in enumerate(questions):
        text = (question.get("text") or "").strip()
        options = question.get("options") or []
        correct = question.get("correct_option")
        if not text:
            errors[f"questions.{index}.text"] = "Question text is required"
        if len(options) < 2:
            errors[f"questions.{index}.options"] = "At least two options are required"
        elif correct not in options:
            errors[f"questions.{index}.correct_option"] = "Correct option must be one of the options"
    if errors:
        raise ValidationError.for_fields(errors)
    return questions


def _build_questions(questions: list[dict]) -> list[Question]:
    return [
        Question(
            position=position,
            text=question["text"].strip(),
            options=list(question["options"]),
            correct_option=question["correct_option"],
        )
        for position, question in enumerate(questions)
    ]


# =============================================================================
# Queries
# =============================================================================


def get_activity(
    db: Session,
    activity_id: UUID,
    lock: bool = False,
    shared: bool = False,
) -> Activity | None:
    """
    Get an activity with its phases and questions.

    `lock` takes a row lock; with `shared` it is FOR SHARE, which waits
    for a running edit but not for other submissions.
    """
    query = (
        select(Activity)
        .where(Activity.id == activity_id)
        .options(selectinload(Activity.phases), selectinload(Activity.questions))
    )
    if lock:
        query = query.with_for_update(read=shared)
    return db.execute(query).scalar_one_or_none()


def principal_can_access(principal: Principal, activity: Activity) -> bool:
    """Organization match, plus phase match for learners. Other roles always pass."""
    if principal.role != Role.LEARNER:
        return True
    if principal.organization_id != activity.organization_id:
        return False
    return principal.phase_number in activity.phase_numbers


def can_access_activity(db: Session, principal: Principal, activity_id: UUID) -> bool:
    activity = get_activity(db, activity_id)
    if not activity:
        return False
    return principal_can_access(principal, activity)


def get_activity_for_principal(db: Session, principal: Principal, activity_id: UUID) -> Activity:
    """
    Get an activity the caller may see.

    Raises:
        NotFoundError: activity missing
        ForbiddenError: other organization, or learner phase not targeted
    """
    activity = get_activity(db, activity_id)
    if not activity:
        raise NotFoundError("Activity not found")

    if principal.organization_id and principal.organization_id != activity.organization_id:
        raise ForbiddenError("Access denied to this activity")
    if principal.role == Role.LEARNER and not principal_can_access(principal, activity):
        raise ForbiddenError("This activity is not assigned to your phase")

    return activity


def list_activities(db: Session, principal: Principal) -> list[Activity]:
    """
    List activities scoped by role.

    - Learner: own organization, targeting the learner's current phase
    - Supervisor: self-authored
    - Instructor: own organization, with at least one submission (grading queue)
    - Administrator: all organizations
    """
    query = (
        select(Activity)
        .options(selectinload(Activity.phases), selectinload(Activity.questions))
        .order_by(Activity.created_at.desc())
    )

    if principal.role == Role.LEARNER:
        if principal.phase_number is None or principal.organization_id is None:
            return []
        query = query.where(
            Activity.organization_id == principal.organization_id,
            Activity.phases.any(ActivityPhase.phase_number == principal.phase_number),
        )
    elif principal.role == Role.SUPERVISOR:
        query = query.where(Activity.author_id == principal.member_id)
    elif principal.role == Role.INSTRUCTOR:
        if principal.organization_id is None:
            return []
        query = query.where(
            Activity.organization_id == principal.organization_id,
            Activity.submissions.any(),
        )
    elif principal.role == Role.ADMINISTRATOR:
        pass
    else:
        raise ForbiddenError("Access denied")

    return list(db.execute(query).scalars().all())


# =============================================================================
# Mutations
# =============================================================================


def _get_authored_activity(db: Session, principal: Principal, activity_id: UUID) -> Activity:
    activity = get_activity(db, activity_id, lock=True)
    if not activity:
        raise NotFoundError("Activity not found")
    if activity.author_id != principal.member_id:
        raise ForbiddenError("Only the author can change this activity")
    return activity


def create_activity(
    db: Session,
    principal: Principal,
    *,
    title: str,
    type: ActivityType,
    phases: list[int],
    description: str | None = None,
    questions: list[dict] | None = None,
    due_date: datetime | None = None,
) -> Activity:
    """
    Create an activity in the author's organization.

    Raises:
        ForbiddenError: caller is not a supervisor of an organization
        ValidationError: invalid phases, or a quiz without valid questions
    """
    if principal.role != Role.SUPERVISOR or principal.organization_id is None:
        raise ForbiddenError("Only supervisors can create activities")

    title = title.strip()
    if not title:
        raise ValidationError.for_fields({"title": "Title is required"})
    phase_numbers = _validate_phases(phases)
    if type == ActivityType.QUIZ:
        questions = _validate_questions(questions)

    activity = Activity(
        title=title,
        description=description,
        type=type.value,
        author_id=principal.member_id,
        organization_id=principal.organization_id,
        due_date=due_date,
        is_edited=False,
    )
    activity.phases = [ActivityPhase(phase_number=number) for number in phase_numbers]
    if type == ActivityType.QUIZ:
        activity.questions = _build_questions(questions)

    db.add(activity)
    db.commit()
    db.refresh(activity)
    logger.info(
        "Activity %s created by %s for phases %s", activity.id, principal.member_id, phase_numbers
    )
    return activity


def update_activity(
    db: Session,
    principal: Principal,
    activity_id: UUID,
    *,
    title: str,
    description: str | None = None,
    questions: list[dict] | None = None,
    due_date: datetime | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> Activity:
    """
    Edit an activity and return every existing submission.

    Title, description and due date are replaced; a supplied question set
    replaces the old one wholesale. All submissions become RETURNED with
    their grade cleared, in the same commit as the edit. Affected learners
    are notified afterwards.
    """
    activity = _get_authored_activity(db, principal, activity_id)

    title = title.strip()
    if not title:
        raise ValidationError.for_fields({"title": "Title is required"})
    if questions is not None:
        if activity.type != ActivityType.QUIZ.value:
            raise ValidationError.for_fields(
                {"questions": "Only quiz activities have questions"}
            )
        questions = _validate_questions(questions)

    activity.title = title
    activity.description = description
    activity.due_date = due_date
    activity.is_edited = True
    if questions is not None:
        activity.questions = _build_questions(questions)

    submissions = db.execute(
        select(Submission).where(Submission.activity_id == activity.id).with_for_update()
    ).scalars().all()
    for submission in submissions:
        submission.status = SubmissionStatus.RETURNED.value
        submission.score = None
        submission.feedback = None
        submission.graded_by_id = None
    learner_ids = [submission.learner_id for submission in submissions]

    db.commit()
    db.refresh(activity)

    logger.info(
        "Activity %s edited; %d submissions returned", activity.id, len(learner_ids)
    )

    if dispatcher and learner_ids:
        notification_facade.notify_activity_returned(dispatcher, learner_ids, activity.title)

    return activity


def delete_activity(db: Session, principal: Principal, activity_id: UUID) -> None:
    """
    Delete an activity with its phase links and questions.

    Raises:
        HasSubmissionsError: the activity already has submissions
    """
    activity = _get_authored_activity(db, principal, activity_id)

    submission_count = db.execute(
        select(func.count(Submission.id)).where(Submission.activity_id == activity.id)
    ).scalar_one()
    if submission_count:
        raise HasSubmissionsError("Cannot delete an activity that has submissions")

    db.delete(activity)
    db.commit()
    logger.info("Activity %s deleted by %s", activity_id, principal.member_id)
