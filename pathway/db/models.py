"""SQLAlchemy ORM models for organizations, admission, activities and progress."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pathway.db.base import Base
from pathway.db.enums import (
    DEFAULT_LEARNER_PHASE,
    EntryRequestStatus,
    Role,
    SubmissionStatus,
)


class Organization(Base):
    """
    A congregation in the multi-organization program.

    Owns members and activities. Never deleted, only deactivated.
    """

    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=text("true"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    members: Mapped[list["Member"]] = relationship(back_populates="organization")
    activities: Mapped[list["Activity"]] = relationship(back_populates="organization")


class Member(Base):
    """
    Any account in the program, learner or staff.

    Identity is delegated to an external provider; no passwords stored.
    `phase` is only meaningful for learners.
    """

    __tablename__ = "members"
    __table_args__ = (
        # At most one active, approved supervisor per organization
        Index(
            "uq_members_org_supervisor",
            "organization_id",
            unique=True,
            postgresql_where=text("role = 'supervisor' AND is_active AND is_approved"),
            sqlite_where=text("role = 'supervisor' AND is_active AND is_approved"),
        ),
        Index("idx_members_org_role", "organization_id", "role"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(String(50), default=Role.LEARNER.value, nullable=False)
    organization_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("organizations.id"), nullable=True
    )
    phase: Mapped[str] = mapped_column(
        String(10), default=DEFAULT_LEARNER_PHASE, server_default=text("'1'"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=text("true"), nullable=False
    )
    is_approved: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    organization: Mapped["Organization | None"] = relationship(back_populates="members")


class EntryRequest(Base):
    """
    An applicant's request to join an organization.

    Created UNDER_REVIEW at registration; transitions exactly once to
    APPROVED or REJECTED. Only one UNDER_REVIEW request per applicant.
    """

    __tablename__ = "entry_requests"
    __table_args__ = (
        Index(
            "uq_entry_requests_applicant_open",
            "applicant_id",
            unique=True,
            postgresql_where=text("status = 'under_review'"),
            sqlite_where=text("status = 'under_review'"),
        ),
        Index("idx_entry_requests_org_status", "organization_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    applicant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="CASCADE"), nullable=False
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id"), nullable=False
    )
    supervisor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20), default=EntryRequestStatus.UNDER_REVIEW.value, nullable=False
    )
    reviewed_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="SET NULL"), nullable=True
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    # Relationships
    applicant: Mapped["Member"] = relationship(foreign_keys=[applicant_id])
    organization: Mapped["Organization"] = relationship()
    supervisor: Mapped["Member | None"] = relationship(foreign_keys=[supervisor_id])


class Activity(Base):
    """
    A graded assignment targeted at one or more phases within one organization.

    Organization is copied from the author at creation and never changes.
    """

    __tablename__ = "activities"
    __table_args__ = (Index("idx_activities_org", "organization_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    author_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("members.id"), nullable=False)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id"), nullable=False
    )
    due_date: Mapped[datetime | None] = mapped_column(nullable=True)
    is_edited: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    author: Mapped["Member"] = relationship()
    organization: Mapped["Organization"] = relationship(back_populates="activities")
    phases: Mapped[list["ActivityPhase"]] = relationship(
        back_populates="activity",
        cascade="all, delete-orphan",
        order_by="ActivityPhase.phase_number",
    )
    questions: Mapped[list["Question"]] = relationship(
        back_populates="activity",
        cascade="all, delete-orphan",
        order_by="Question.position",
    )
    submissions: Mapped[list["Submission"]] = relationship(back_populates="activity")

    @property
    def phase_numbers(self) -> list[int]:
        return [link.phase_number for link in self.phases]


class ActivityPhase(Base):
    """Link between an activity and one targeted phase number."""

    __tablename__ = "activity_phases"
    __table_args__ = (
        UniqueConstraint("activity_id", "phase_number", name="uq_activity_phase"),
        CheckConstraint("phase_number BETWEEN 1 AND 16", name="ck_activity_phase_range"),
        Index("idx_activity_phases_phase", "phase_number"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    activity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("activities.id", ondelete="CASCADE"), nullable=False
    )
    phase_number: Mapped[int] = mapped_column(Integer, nullable=False)

    activity: Mapped["Activity"] = relationship(back_populates="phases")


class Question(Base):
    """A multiple-choice question of a quiz activity."""

    __tablename__ = "questions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    activity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("activities.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    correct_option: Mapped[str] = mapped_column(Text, nullable=False)

    activity: Mapped["Activity"] = relationship(back_populates="questions")


class Submission(Base):
    """
    A learner's attempt at an activity.

    One row per (activity, learner). `graded_by_id` is NULL on a GRADED
    submission when it was graded automatically.
    """

    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("activity_id", "learner_id", name="uq_submission_activity_learner"),
        CheckConstraint(
            "score IS NULL OR (score >= 0 AND score <= 10)", name="ck_submission_score_range"
        ),
        Index("idx_submissions_activity_status", "activity_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    activity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("activities.id"), nullable=False
    )
    learner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    answer_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    attachments: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    quiz_answers: Mapped[list | None] = mapped_column(JSON, nullable=True)
    score: Mapped[float | None] = mapped_column(Float, nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    graded_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20), default=SubmissionStatus.PENDING.value, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    activity: Mapped["Activity"] = relationship(back_populates="submissions")
    learner: Mapped["Member"] = relationship(foreign_keys=[learner_id])
    graded_by: Mapped["Member | None"] = relationship(foreign_keys=[graded_by_id])

    @property
    def is_auto_graded(self) -> bool:
        return self.status == SubmissionStatus.GRADED.value and self.graded_by_id is None


class ContentProgress(Base):
    """A learner's completed topics within one catalog phase."""

    __tablename__ = "content_progress"
    __table_args__ = (
        UniqueConstraint("member_id", "phase_id", name="uq_content_progress_member_phase"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="CASCADE"), nullable=False
    )
    phase_id: Mapped[str] = mapped_column(String(50), nullable=False)
    completed_topic_ids: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    total_topics: Mapped[int] = mapped_column(Integer, nullable=False)
    progress: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )
