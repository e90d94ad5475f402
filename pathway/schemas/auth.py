"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from pathway.db.enums import Role


class Principal(BaseModel):
    """
    Authenticated caller context.

    Returned by the get_current_principal dependency and consumed
    read-only by every workflow.
    """
    model_config = ConfigDict(frozen=True)

    member_id: UUID
    name: str
    email: str
    role: Role  # Validated enum
    organization_id: UUID | None = None
    phase: str | None = None

    @property
    def phase_number(self) -> int | None:
        if self.role != Role.LEARNER or not self.phase:
            return None
        try:
            return int(self.phase)
        except ValueError:
            return None


class RegisterRequest(BaseModel):
    """Self-service registration; creates the account and its entry request."""
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    role: Role = Role.LEARNER
    organization_id: UUID


class MeResponse(BaseModel):
    """Response schema for GET /auth/me endpoint."""
    member_id: UUID
    name: str
    email: str
    role: Role
    organization_id: UUID | None
    organization_name: str | None = None
    phase: str | None
