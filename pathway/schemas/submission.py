"""Submission-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from pathway.db.enums import ActivityType, MAX_SCORE, SubmissionStatus


class QuizAnswer(BaseModel):
    question_id: UUID
    answer: str


class SubmissionCreate(BaseModel):
    """
    Learner attempt.

    Which fields are required depends on the activity type:
    text needs an answer or attachment, pdf an attachment, quiz answers.
    """
    answer_text: str | None = None
    attachments: list[str] = []
    quiz_answers: list[QuizAnswer] | None = None


class GradeRequest(BaseModel):
    score: float = Field(..., ge=0, le=MAX_SCORE)
    feedback: str | None = Field(None, max_length=5000)


class SubmissionRead(BaseModel):
    """Response schema for reading a submission."""
    id: UUID
    activity_id: UUID
    learner_id: UUID
    type: ActivityType
    answer_text: str | None
    attachments: list[str]
    quiz_answers: list[dict] | None
    score: float | None
    feedback: str | None
    graded_by_id: UUID | None
    is_auto_graded: bool
    status: SubmissionStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
