"""Submission grading endpoint."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pathway.core.deps import get_db, get_push_dispatcher, require_roles
from pathway.db.enums import Role
from pathway.schemas.auth import Principal
from pathway.schemas.submission import GradeRequest, SubmissionRead
from pathway.services import submission_service
from pathway.services.notification_service import NotificationDispatcher


router = APIRouter()


@router.post("/{submission_id}/grade", response_model=SubmissionRead)
def grade_submission(
    submission_id: UUID,
    data: GradeRequest,
    principal: Principal = Depends(require_roles([Role.INSTRUCTOR, Role.SUPERVISOR])),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_push_dispatcher),
):
    """Grade a submission (0-10). Re-grading overwrites the previous grade."""
    return submission_service.grade_submission(
        db,
        principal,
        submission_id,
        score=data.score,
        feedback=data.feedback,
        dispatcher=dispatcher,
    )
