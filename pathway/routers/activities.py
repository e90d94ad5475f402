"""Activity endpoints - authoring, role-scoped listing and learner submissions."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from pathway.core.deps import get_current_principal, get_db, get_push_dispatcher, require_roles
from pathway.db.enums import Role
from pathway.db.models import Activity
from pathway.schemas.activity import ActivityCreate, ActivityRead, ActivityUpdate, QuestionRead
from pathway.schemas.auth import Principal
from pathway.schemas.submission import SubmissionCreate, SubmissionRead
from pathway.services import activity_service, submission_service
from pathway.services.notification_service import NotificationDispatcher


router = APIRouter()


# =============================================================================
# Helpers
# =============================================================================


def _activity_to_response(activity: Activity, principal: Principal) -> ActivityRead:
    """Build the response; learners never see correct options."""
    hide_answers = principal.role == Role.LEARNER
    questions = []
    for question in activity.questions:
        read = QuestionRead.model_validate(question)
        if hide_answers:
            read = read.model_copy(update={"correct_option": None})
        questions.append(read)

    return ActivityRead(
        id=activity.id,
        title=activity.title,
        description=activity.description,
        type=activity.type,
        author_id=activity.author_id,
        organization_id=activity.organization_id,
        due_date=activity.due_date,
        is_edited=activity.is_edited,
        phases=activity.phase_numbers,
        questions=questions,
        created_at=activity.created_at,
        updated_at=activity.updated_at,
    )


# =============================================================================
# Activity CRUD Endpoints
# =============================================================================


@router.get("", response_model=list[ActivityRead])
def list_activities(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """List activities visible to the caller's role."""
    activities = activity_service.list_activities(db, principal)
    return [_activity_to_response(a, principal) for a in activities]


@router.get("/{activity_id}", response_model=ActivityRead)
def get_activity(
    activity_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Get one activity."""
    activity = activity_service.get_activity_for_principal(db, principal, activity_id)
    return _activity_to_response(activity, principal)


@router.post("", response_model=ActivityRead, status_code=status.HTTP_201_CREATED)
def create_activity(
    data: ActivityCreate,
    principal: Principal = Depends(require_roles([Role.SUPERVISOR])),
    db: Session = Depends(get_db),
):
    """Create an activity in the supervisor's organization."""
    activity = activity_service.create_activity(
        db,
        principal,
        title=data.title,
        type=data.type,
        phases=data.phases,
        description=data.description,
        questions=[q.model_dump() for q in data.questions] if data.questions else None,
        due_date=data.due_date,
    )
    return _activity_to_response(activity, principal)


@router.put("/{activity_id}", response_model=ActivityRead)
def update_activity(
    activity_id: UUID,
    data: ActivityUpdate,
    principal: Principal = Depends(require_roles([Role.SUPERVISOR])),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_push_dispatcher),
):
    """Edit an activity. Every existing submission is returned to its learner."""
    activity = activity_service.update_activity(
        db,
        principal,
        activity_id,
        title=data.title,
        description=data.description,
        questions=[q.model_dump() for q in data.questions] if data.questions is not None else None,
        due_date=data.due_date,
        dispatcher=dispatcher,
    )
    return _activity_to_response(activity, principal)


@router.delete("/{activity_id}")
def delete_activity(
    activity_id: UUID,
    principal: Principal = Depends(require_roles([Role.SUPERVISOR])),
    db: Session = Depends(get_db),
):
    """Delete an activity that has no submissions."""
    activity_service.delete_activity(db, principal, activity_id)
    return {"message": "Activity deleted"}


# =============================================================================
# Submission Endpoints (on activities)
# =============================================================================


@router.post(
    "/{activity_id}/submissions",
    response_model=SubmissionRead,
    status_code=status.HTTP_201_CREATED,
)
def create_submission(
    activity_id: UUID,
    data: SubmissionCreate,
    principal: Principal = Depends(require_roles([Role.LEARNER])),
    db: Session = Depends(get_db),
):
    """Submit an attempt. Quiz attempts are graded immediately."""
    return submission_service.create_submission(
        db,
        principal,
        activity_id,
        answer_text=data.answer_text,
        attachments=data.attachments,
        quiz_answers=[a.model_dump() for a in data.quiz_answers] if data.quiz_answers else None,
    )


@router.get("/{activity_id}/submissions", response_model=list[SubmissionRead])
def list_submissions(
    activity_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """List an activity's submissions (staff of the activity's organization)."""
    return submission_service.list_submissions_for_activity(db, principal, activity_id)
