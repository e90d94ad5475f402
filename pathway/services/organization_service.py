"""Organization management service. Organizations are deactivated, never deleted."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from pathway.db.models import Organization
from pathway.services.errors import InvalidOrganizationError, NotFoundError, ValidationError


logger = logging.getLogger(__name__)


def list_organizations(db: Session, include_inactive: bool = False) -> list[Organization]:
    """List organizations, active only unless asked otherwise."""
    query = select(Organization)
    if not include_inactive:
        query = query.where(Organization.is_active.is_(True))
    query = query.order_by(Organization.name)
    return list(db.execute(query).scalars().all())


def get_organization(db: Session, org_id: UUID) -> Organization | None:
    return db.get(Organization, org_id)


def get_active_organization(db: Session, org_id: UUID, lock: bool = False) -> Organization:
    """
    Get an organization that accepts members.

    Raises:
        InvalidOrganizationError: missing or inactive
    """
    query = select(Organization).where(Organization.id == org_id)
    if lock:
        query = query.with_for_update()
    organization = db.execute(query).scalar_one_or_none()
    if not organization or not organization.is_active:
        raise InvalidOrganizationError(
            "Invalid organization",
            errors=[{"field": "organization_id", "message": "Organization not found or inactive"}],
        )
    return organization


def create_organization(db: Session, name: str) -> Organization:
    name = name.strip()
    if not name:
        raise ValidationError.for_fields({"name": "Organization name is required"})
    organization = Organization(name=name, is_active=True)
    db.add(organization)
    db.commit()
    db.refresh(organization)
    logger.info("Organization %s created", organization.id)
    return organization


def deactivate_organization(db: Session, org_id: UUID) -> Organization:
    organization = get_organization(db, org_id)
    if not organization:
        raise NotFoundError("Organization not found")
    organization.is_active = False
    db.commit()
    db.refresh(organization)
    logger.info("Organization %s deactivated", organization.id)
    return organization
