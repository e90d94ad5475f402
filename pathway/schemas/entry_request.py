"""Entry request (admission) Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr

from pathway.db.enums import EntryRequestStatus, Role


class EntryRequestApplicant(BaseModel):
    id: UUID
    name: str
    email: str
    role: Role

    model_config = {"from_attributes": True}


class EntryRequestRead(BaseModel):
    """Response schema for reading an entry request."""
    id: UUID
    applicant_id: UUID
    organization_id: UUID
    supervisor_id: UUID | None
    status: EntryRequestStatus
    reviewed_by_id: UUID | None = None
    reviewed_at: datetime | None = None
    created_at: datetime
    applicant: EntryRequestApplicant | None = None

    model_config = {"from_attributes": True}


class EntryRequestCreate(BaseModel):
    """New entry request for an existing, unapproved account."""
    email: EmailStr
    organization_id: UUID


class RegisterResponse(BaseModel):
    """Registration result: the unapproved account and its pending request."""
    member_id: UUID
    request_id: UUID
    status: EntryRequestStatus
