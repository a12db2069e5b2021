"""
Seed catalog loading.

The catalog of required resources is a versioned JSON file shipped with the
package (data/resources_seed.json). It is validated once and passed explicitly
to the seed reconciler; an alternate file can be supplied for other deployments
or tests.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from pydantic import TypeAdapter

from resource_registry.schemas.resource import SeedEntry

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "data" / "resources_seed.json"

SeedCatalog = Tuple[SeedEntry, ...]

_CATALOG_ADAPTER = TypeAdapter(List[SeedEntry])


# PUBLIC_INTERFACE
def load_seed_catalog(path: Optional[Union[str, Path]] = None) -> SeedCatalog:
    """
    Load and validate a seed catalog.

    Parameters:
      path: JSON file containing a list of entries; defaults to the packaged catalog.
    Returns:
      The entries as an immutable tuple, in file order.
    Raises:
      OSError: if the file cannot be read.
      pydantic.ValidationError: if an entry is malformed.
    """
    source = Path(path) if path else DEFAULT_CATALOG_PATH
    entries = _CATALOG_ADAPTER.validate_json(source.read_bytes())
    logger.info("Loaded %d seed catalog entries from %s", len(entries), source)
    return tuple(entries)


# PUBLIC_INTERFACE
def filter_catalog(catalog: Iterable[SeedEntry], app_name: Optional[str] = None) -> List[SeedEntry]:
    """
    Restrict a catalog to one application (case-insensitive), preserving order.

    A missing or blank app_name returns every entry.
    """
    if app_name is None or not app_name.strip():
        return list(catalog)
    wanted = app_name.strip().casefold()
    return [entry for entry in catalog if entry.app_name.casefold() == wanted]


# PUBLIC_INTERFACE
def catalog_app_names(catalog: Iterable[SeedEntry]) -> List[str]:
    """Distinct application names in first-seen order."""
    seen: dict[str, None] = {}
    for entry in catalog:
        seen.setdefault(entry.app_name, None)
    return list(seen)
