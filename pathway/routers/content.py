"""Curriculum Catalog endpoint."""

from fastapi import APIRouter, Depends

from pathway.core.deps import get_current_principal
from pathway.schemas.catalog import Catalog
from pathway.services.catalog_service import get_catalog


router = APIRouter(dependencies=[Depends(get_current_principal)])


@router.get("", response_model=Catalog)
def get_content(catalog: Catalog = Depends(get_catalog)):
    """Return the phase -> topic -> resource tree."""
    return catalog
