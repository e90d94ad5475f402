"""Pydantic schemas for API request/response models."""

from pathway.schemas.auth import MeResponse, Principal, RegisterRequest
from pathway.schemas.catalog import Catalog, CatalogPhase, CatalogResource, CatalogTopic
from pathway.schemas.organization import OrganizationCreate, OrganizationRead
from pathway.schemas.member import (
    MemberCreate,
    MemberPhaseUpdate,
    MemberRead,
    MemberStatusUpdate,
)
from pathway.schemas.entry_request import EntryRequestCreate, EntryRequestRead, RegisterResponse
from pathway.schemas.activity import (
    ActivityCreate,
    ActivityRead,
    ActivityUpdate,
    QuestionIn,
    QuestionRead,
)
from pathway.schemas.submission import (
    GradeRequest,
    QuizAnswer,
    SubmissionCreate,
    SubmissionRead,
)
from pathway.schemas.progress import PhaseProgressRead, TopicMark

__all__ = [
    # Auth
    "Principal",
    "RegisterRequest",
    "MeResponse",
    # Catalog
    "Catalog",
    "CatalogPhase",
    "CatalogTopic",
    "CatalogResource",
    # Organization
    "OrganizationCreate",
    "OrganizationRead",
    # Member
    "MemberCreate",
    "MemberRead",
    "MemberPhaseUpdate",
    "MemberStatusUpdate",
    # Entry request
    "EntryRequestCreate",
    "EntryRequestRead",
    "RegisterResponse",
    # Activity
    "ActivityCreate",
    "ActivityUpdate",
    "ActivityRead",
    "QuestionIn",
    "QuestionRead",
    # Submission
    "QuizAnswer",
    "SubmissionCreate",
    "GradeRequest",
    "SubmissionRead",
    # Progress
    "TopicMark",
    "PhaseProgressRead",
]
