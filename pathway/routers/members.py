"""Member administration endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from pathway.core.deps import get_db, require_roles
from pathway.db.enums import Role
from pathway.schemas.auth import Principal
from pathway.schemas.catalog import Catalog
from pathway.schemas.member import MemberCreate, MemberPhaseUpdate, MemberRead, MemberStatusUpdate
from pathway.services import member_service
from pathway.services.catalog_service import get_catalog


router = APIRouter()


@router.post("", response_model=MemberRead, status_code=status.HTTP_201_CREATED)
def create_member(
    data: MemberCreate,
    principal: Principal = Depends(require_roles([Role.ADMINISTRATOR])),
    db: Session = Depends(get_db),
    catalog: Catalog = Depends(get_catalog),
):
    """Provision an approved account."""
    return member_service.create_member(
        db,
        catalog,
        name=data.name,
        email=data.email,
        role=data.role,
        organization_id=data.organization_id,
        phase=data.phase,
    )


@router.patch("/{member_id}/phase", response_model=MemberRead)
def update_phase(
    member_id: UUID,
    data: MemberPhaseUpdate,
    principal: Principal = Depends(require_roles([Role.ADMINISTRATOR, Role.SUPERVISOR])),
    db: Session = Depends(get_db),
    catalog: Catalog = Depends(get_catalog),
):
    """Move a learner to another phase."""
    return member_service.set_phase(db, catalog, principal, member_id, data.phase)


@router.patch("/{member_id}/status", response_model=MemberRead)
def update_status(
    member_id: UUID,
    data: MemberStatusUpdate,
    principal: Principal = Depends(require_roles([Role.ADMINISTRATOR])),
    db: Session = Depends(get_db),
):
    """Activate or deactivate an account."""
    return member_service.set_active(db, member_id, data.is_active)
