"""Member-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from pathway.db.enums import DEFAULT_LEARNER_PHASE, Role


class MemberCreate(BaseModel):
    """
    Request schema for administrator provisioning.

    Accounts created this way are approved immediately.
    """
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    role: Role
    organization_id: UUID | None = None
    phase: str = DEFAULT_LEARNER_PHASE

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower()


class MemberPhaseUpdate(BaseModel):
    phase: str = Field(..., min_length=1, max_length=10)


class MemberStatusUpdate(BaseModel):
    is_active: bool


class MemberRead(BaseModel):
    """Response schema for reading a member."""
    id: UUID
    name: str
    email: str
    role: Role
    organization_id: UUID | None
    phase: str
    is_active: bool
    is_approved: bool
    created_at: datetime

    model_config = {"from_attributes": True}
