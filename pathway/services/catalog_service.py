"""Curriculum Catalog loading.

The catalog is static configuration: it is read once from JSON and shared
read-only by every request.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pathway.core.config import settings
from pathway.schemas.catalog import Catalog


logger = logging.getLogger(__name__)


def load_catalog(path: Path) -> Catalog:
    """
    Load and validate a catalog file.

    A missing or malformed file yields an empty catalog so the API can
    still serve admission and activity endpoints.
    """
    try:
        catalog = Catalog.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.exception("Could not load curriculum catalog from %s", path)
        return Catalog()
    logger.info(
        "Loaded curriculum catalog %s with %d phases", catalog.version, len(catalog.phases)
    )
    return catalog


@lru_cache(maxsize=1)
def get_catalog() -> Catalog:
    """FastAPI dependency returning the process-wide catalog."""
    return load_catalog(settings.catalog_path)
