"""Activity-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from pathway.db.enums import ActivityType


class QuestionIn(BaseModel):
    text: str = Field(..., min_length=1)
    options: list[str] = Field(..., min_length=2)
    correct_option: str


class QuestionRead(BaseModel):
    """Quiz question. `correct_option` is withheld from learners."""
    id: UUID
    position: int
    text: str
    options: list[str]
    correct_option: str | None = None

    model_config = {"from_attributes": True}


class ActivityCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    type: ActivityType
    phases: list[int] = Field(..., min_length=1)
    questions: list[QuestionIn] | None = None
    due_date: datetime | None = None


class ActivityUpdate(BaseModel):
    """Full replacement of the editable fields. Omitted questions keep the current set."""
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    questions: list[QuestionIn] | None = None
    due_date: datetime | None = None


class ActivityRead(BaseModel):
    """Response schema for reading an activity."""
    id: UUID
    title: str
    description: str | None
    type: ActivityType
    author_id: UUID
    organization_id: UUID
    due_date: datetime | None
    is_edited: bool
    phases: list[int]
    questions: list[QuestionRead] = []
    created_at: datetime
    updated_at: datetime
