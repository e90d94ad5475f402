"""Organization endpoints. Listing is public so registration forms can offer choices."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from pathway.core.deps import get_db, require_roles
from pathway.db.enums import Role
from pathway.schemas.auth import Principal
from pathway.schemas.organization import OrganizationCreate, OrganizationRead
from pathway.services import organization_service


router = APIRouter()


@router.get("", response_model=list[OrganizationRead])
def list_organizations(db: Session = Depends(get_db)):
    """List active organizations."""
    return organization_service.list_organizations(db)


@router.post("", response_model=OrganizationRead, status_code=status.HTTP_201_CREATED)
def create_organization(
    data: OrganizationCreate,
    principal: Principal = Depends(require_roles([Role.ADMINISTRATOR])),
    db: Session = Depends(get_db),
):
    return organization_service.create_organization(db, data.name)


@router.post("/{org_id}/deactivate", response_model=OrganizationRead)
def deactivate_organization(
    org_id: UUID,
    principal: Principal = Depends(require_roles([Role.ADMINISTRATOR])),
    db: Session = Depends(get_db),
):
    """Soft-delete an organization. Its members and activities are kept."""
    return organization_service.deactivate_organization(db, org_id)
