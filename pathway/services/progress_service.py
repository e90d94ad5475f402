"""Progress Tracker - per-phase topic completion against the Curriculum Catalog."""

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pathway.db.enums import ROLES_STAFF, Role
from pathway.db.models import ContentProgress, Member
from pathway.schemas.auth import Principal
from pathway.schemas.catalog import Catalog
from pathway.services.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError


logger = logging.getLogger(__name__)


@dataclass
class PhaseProgress:
    phase_id: str
    title: str
    total_topics: int
    completed_topic_ids: list[str] = field(default_factory=list)
    progress: float = 0.0

    @property
    def completed_topics(self) -> int:
        return len(self.completed_topic_ids)


def _fraction(completed: int, total: int) -> float:
    return completed / total if total else 0.0


def ensure_can_access_progress(db: Session, principal: Principal, member_id: UUID) -> Member:
    """
    Progress is visible to its owner, administrators, and staff of the
    member's organization.
    """
    member = db.get(Member, member_id)
    if not member:
        raise NotFoundError("Member not found")

    if principal.member_id == member.id:
        return member
    if principal.role == Role.ADMINISTRATOR:
        return member
    if principal.role in ROLES_STAFF and principal.organization_id == member.organization_id:
        return member
    raise ForbiddenError("Access denied to this member's progress")


def get_progress(db: Session, catalog: Catalog, member_id: UUID) -> list[PhaseProgress]:
    """One entry per catalog phase; phases without a record report zero progress."""
    records = {
        record.phase_id: record
        for record in db.execute(
            select(ContentProgress).where(ContentProgress.member_id == member_id)
        ).scalars()
    }

    result = []
    for phase in catalog.phases:
        record = records.get(phase.id)
        if record is None:
            result.append(
                PhaseProgress(phase_id=phase.id, title=phase.title, total_topics=len(phase.topics))
            )
            continue
        result.append(
            PhaseProgress(
                phase_id=phase.id,
                title=phase.title,
                total_topics=record.total_topics,
                completed_topic_ids=list(record.completed_topic_ids),
                progress=record.progress,
            )
        )
    return result


def mark_topic(
    db: Session,
    catalog: Catalog,
    member_id: UUID,
    phase_id: str,
    topic_id: str,
    completed: bool,
) -> PhaseProgress:
    """
    Mark a topic completed or not and recompute the phase fraction.

    The phase record is created on first mark with its topic total taken
    from the catalog. Repeating a mark leaves the set unchanged but still
    re-persists the fraction.

    Raises:
        ValidationError: phase or topic not in the catalog
        ConflictError: concurrent first mark created the record
    """
    phase = catalog.get_phase(phase_id)
    if phase is None:
        raise ValidationError.for_fields({"phase_id": "Phase not found in catalog"})
    if not catalog.has_topic(phase_id, topic_id):
        raise ValidationError.for_fields({"topic_id": "Topic not found in this phase"})

    record = db.execute(
        select(ContentProgress)
        .where(ContentProgress.member_id == member_id, ContentProgress.phase_id == phase_id)
        .with_for_update()
    ).scalar_one_or_none()
    if record is None:
        record = ContentProgress(
            member_id=member_id,
            phase_id=phase_id,
            completed_topic_ids=[],
            total_topics=len(phase.topics),
        )
        db.add(record)

    completed_ids = list(record.completed_topic_ids or [])
    if completed and topic_id not in completed_ids:
        completed_ids.append(topic_id)
    elif not completed and topic_id in completed_ids:
        completed_ids.remove(topic_id)

    # Reassign so the JSON column is flagged dirty
    record.completed_topic_ids = completed_ids
    record.progress = _fraction(len(completed_ids), record.total_topics)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Progress was updated concurrently, please retry")
    db.refresh(record)

    logger.info(
        "Member %s phase %s progress %.2f", member_id, phase_id, record.progress
    )
    return PhaseProgress(
        phase_id=phase.id,
        title=phase.title,
        total_topics=record.total_topics,
        completed_topic_ids=list(record.completed_topic_ids),
        progress=record.progress,
    )
