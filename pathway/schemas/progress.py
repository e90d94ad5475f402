"""Content progress Pydantic schemas."""

from pydantic import BaseModel, Field


class TopicMark(BaseModel):
    phase_id: str = Field(..., min_length=1)
    topic_id: str = Field(..., min_length=1)
    completed: bool = True


class PhaseProgressRead(BaseModel):
    phase_id: str
    title: str
    completed_topics: int
    total_topics: int
    completed_topic_ids: list[str]
    progress: float

    model_config = {"from_attributes": True}
