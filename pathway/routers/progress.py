"""Content progress endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pathway.core.deps import get_current_principal, get_db
from pathway.schemas.auth import Principal
from pathway.schemas.catalog import Catalog
from pathway.schemas.progress import PhaseProgressRead, TopicMark
from pathway.services import progress_service
from pathway.services.catalog_service import get_catalog


router = APIRouter()


def _to_response(item: progress_service.PhaseProgress) -> PhaseProgressRead:
    return PhaseProgressRead(
        phase_id=item.phase_id,
        title=item.title,
        completed_topics=item.completed_topics,
        total_topics=item.total_topics,
        completed_topic_ids=item.completed_topic_ids,
        progress=item.progress,
    )


@router.get("/{member_id}/progress", response_model=list[PhaseProgressRead])
def get_progress(
    member_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    catalog: Catalog = Depends(get_catalog),
):
    """Per-phase completion for a member (owner or staff)."""
    progress_service.ensure_can_access_progress(db, principal, member_id)
    return [_to_response(item) for item in progress_service.get_progress(db, catalog, member_id)]


@router.post("/{member_id}/progress", response_model=PhaseProgressRead)
def mark_topic(
    member_id: UUID,
    data: TopicMark,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    catalog: Catalog = Depends(get_catalog),
):
    """Mark a catalog topic completed (or not) and return the phase progress."""
    progress_service.ensure_can_access_progress(db, principal, member_id)
    item = progress_service.mark_topic(
        db, catalog, member_id, data.phase_id, data.topic_id, data.completed
    )
    return _to_response(item)
