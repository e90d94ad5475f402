"""
Submission Workflow - one live attempt per learner and activity.

State machine:
    PENDING  -> GRADED     (manual grading)
    (quiz)   -> GRADED     (auto-graded on creation, grader left empty)
    any      -> RETURNED   (parent activity edited)
    RETURNED -> deleted    (learner submits again)
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from pathway.db.enums import MAX_SCORE, ROLES_CAN_GRADE, ActivityType, Role, SubmissionStatus
from pathway.db.models import Activity, Member, Question, Submission
from pathway.schemas.auth import Principal
from pathway.services import activity_service, notification_facade
from pathway.services.errors import (
    AlreadyGradedError,
    AlreadySubmittedError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from pathway.services.notification_service import NotificationDispatcher


logger = logging.getLogger(__name__)


# =============================================================================
# Quiz auto-grading
# =============================================================================


def compute_quiz_score(correct: int, total: int) -> int:
    """
    Scale correct/total to a whole score in 0..10, rounding halves up.

    Integer arithmetic: round(10 * correct / total) computed as
    floor((20 * correct + total) / (2 * total)), so 1 of 4 gives 3 rather
    than the 2 of banker's rounding. Stored in the float score column.
    """
    if total <= 0:
        return 0
    return (correct * MAX_SCORE * 2 + total) // (2 * total)


def grade_quiz(questions: list[Question], answers: list[dict]) -> tuple[int, str]:
    """
    Score quiz answers against the question set.

    Answers referencing unknown questions count as incorrect, and each
    question is credited at most once. Returns the score and a transcript
    with one "<prompt>: <answer> (correct|incorrect)" line per answer.
    """
    by_id = {str(question.id): question for question in questions}
    credited: set[str] = set()
    lines = []

    for answer in answers:
        question_id = str(answer["question_id"])
        chosen = answer["answer"]
        question = by_id.get(question_id)
        is_correct = question is not None and chosen == question.correct_option
        if is_correct:
            credited.add(question_id)
        prompt = question.text if question is not None else question_id
        lines.append(f"{prompt}: {chosen} ({'correct' if is_correct else 'incorrect'})")

    return compute_quiz_score(len(credited), len(questions)), "\n".join(lines)


# =============================================================================
# Queries
# =============================================================================


def get_submission(db: Session, submission_id: UUID, lock: bool = False) -> Submission | None:
    query = select(Submission).where(Submission.id == submission_id)
    if lock:
        query = query.with_for_update()
    return db.execute(query).scalar_one_or_none()


def list_submissions_for_activity(
    db: Session,
    principal: Principal,
    activity_id: UUID,
) -> list[Submission]:
    """
    List an activity's submissions for grading.

    Learners are denied; staff only see activities of their organization.
    """
    if principal.role == Role.LEARNER:
        raise ForbiddenError("Learners cannot list submissions")

    activity = activity_service.get_activity(db, activity_id)
    if not activity:
        raise NotFoundError("Activity not found")
    if principal.role != Role.ADMINISTRATOR and principal.organization_id != activity.organization_id:
        raise ForbiddenError("Access denied to this activity")

    query = (
        select(Submission)
        .where(Submission.activity_id == activity.id)
        .options(selectinload(Submission.learner))
        .order_by(Submission.created_at)
    )
    return list(db.execute(query).scalars().all())


# =============================================================================
# Mutations
# =============================================================================


def _validate_payload(
    activity: Activity,
    answer_text: str | None,
    attachments: list[str],
    quiz_answers: list[dict] | None,
) -> None:
    if activity.type == ActivityType.TEXT.value:
        if not (answer_text and answer_text.strip()) and not attachments:
            raise ValidationError.for_fields(
                {"answer_text": "An answer or at least one attachment is required"}
            )
    elif activity.type == ActivityType.PDF.value:
        if not attachments:
            raise ValidationError.for_fields({"attachments": "At least one file is required"})
    elif activity.type == ActivityType.QUIZ.value:
        if not quiz_answers:
            raise ValidationError.for_fields({"quiz_answers": "Quiz answers are required"})


def create_submission(
    db: Session,
    principal: Principal,
    activity_id: UUID,
    *,
    answer_text: str | None = None,
    attachments: list[str] | None = None,
    quiz_answers: list[dict] | None = None,
) -> Submission:
    """
    Submit the learner's attempt.

    A RETURNED submission is deleted to make way for the new attempt.
    Quiz submissions are graded immediately.

    Raises:
        ForbiddenError: not a learner, or activity outside the learner's scope
        NotFoundError: activity missing
        ValidationError: payload does not fit the activity type
        AlreadySubmittedError: a submission is still pending
        AlreadyGradedError: the submission was graded
    """
    if principal.role != Role.LEARNER:
        raise ForbiddenError("Only learners can submit activities")

    # Held until commit: an edit cannot return submissions or swap the
    # question set while this attempt is validated and graded
    activity = activity_service.get_activity(db, activity_id, lock=True, shared=True)
    if not activity:
        raise NotFoundError("Activity not found")
    if not activity_service.principal_can_access(principal, activity):
        raise ForbiddenError("This activity is not assigned to you")

    attachments = list(attachments or [])
    _validate_payload(activity, answer_text, attachments, quiz_answers)

    # Serialize concurrent attempts by the same learner
    db.execute(select(Member).where(Member.id == principal.member_id).with_for_update())

    existing = db.execute(
        select(Submission)
        .where(
            Submission.activity_id == activity.id,
            Submission.learner_id == principal.member_id,
        )
        .with_for_update()
    ).scalar_one_or_none()

    if existing:
        if existing.status == SubmissionStatus.GRADED.value:
            raise AlreadyGradedError("This activity was already graded")
        if existing.status == SubmissionStatus.PENDING.value:
            raise AlreadySubmittedError("A submission is already awaiting grading")
        db.delete(existing)
        # The unique (activity, learner) pair must be free before the insert
        db.flush()

    submission = Submission(
        activity_id=activity.id,
        learner_id=principal.member_id,
        type=activity.type,
        answer_text=answer_text,
        attachments=attachments,
        status=SubmissionStatus.PENDING.value,
    )

    if activity.type == ActivityType.QUIZ.value:
        stored_answers = [
            {"question_id": str(answer["question_id"]), "answer": answer["answer"]}
            for answer in quiz_answers
        ]
        score, transcript = grade_quiz(activity.questions, stored_answers)
        submission.quiz_answers = stored_answers
        submission.answer_text = transcript
        submission.score = score
        submission.status = SubmissionStatus.GRADED.value
        submission.graded_by_id = None

    db.add(submission)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        # Foreign key failure: the activity was deleted concurrently
        if db.execute(select(Activity.id).where(Activity.id == activity_id)).first() is None:
            raise NotFoundError("Activity not found")
        raise AlreadySubmittedError("A submission is already awaiting grading")
    db.refresh(submission)

    logger.info(
        "Submission %s created for activity %s (status %s)",
        submission.id,
        activity.id,
        submission.status,
    )
    return submission


def grade_submission(
    db: Session,
    principal: Principal,
    submission_id: UUID,
    *,
    score: float,
    feedback: str | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> Submission:
    """
    Record a manual grade. Re-grading a GRADED submission overwrites it.

    Raises:
        ForbiddenError: caller cannot grade, or activity of another organization
        ValidationError: score outside 0..10
        NotFoundError: submission missing
        InvalidTransitionError: submission was returned and awaits a new attempt
    """
    if principal.role not in ROLES_CAN_GRADE:
        raise ForbiddenError("Only instructors and supervisors can grade")
    if score < 0 or score > MAX_SCORE:
        raise ValidationError.for_fields({"score": f"Score must be between 0 and {MAX_SCORE}"})

    submission = get_submission(db, submission_id, lock=True)
    if not submission:
        raise NotFoundError("Submission not found")

    activity = submission.activity
    if principal.organization_id != activity.organization_id:
        raise ForbiddenError("Access denied to this submission")
    if submission.status == SubmissionStatus.RETURNED.value:
        raise InvalidTransitionError("Submission was returned and awaits a new attempt")

    submission.score = score
    submission.feedback = feedback
    submission.graded_by_id = principal.member_id
    submission.status = SubmissionStatus.GRADED.value

    db.commit()
    db.refresh(submission)

    logger.info(
        "Submission %s graded %s by %s", submission.id, score, principal.member_id
    )

    if dispatcher:
        notification_facade.notify_submission_graded(
            dispatcher, submission.learner_id, activity.title, score
        )

    return submission
