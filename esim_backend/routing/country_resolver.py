"""
Country Resolver - maps an extracted country name to its catalog record.

Lookup is an exact match against the countries table, using the casing the
table was imported with. "Japan" resolves, "japan" and "Nippon" do not.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..models import CountryRecord
from ..services.catalog import CatalogService

logger = logging.getLogger(__name__)


class CountryResolver:
    """Resolves country names to CountryRecords via the catalog."""

    def __init__(self, catalog: CatalogService):
        self.catalog = catalog

    async def resolve(self, name: Optional[str]) -> Optional[CountryRecord]:
        """
        Resolve a country name.

        Returns:
            The first matching CountryRecord, or None when the name is missing
            or not in the reference set. None is an expected outcome.

        Raises:
            CatalogError: If the countries table cannot be read
        """
        if name is None or not name.strip():
            logger.info("No country name extracted, skipping lookup")
            return None

        matches = await self.catalog.find_countries(name)
        if not matches:
            logger.info(f"Country not recognized: {name!r}")
            return None

        if len(matches) > 1:
            logger.debug(f"{len(matches)} countries named {name!r}, using {matches[0].code}")
        return matches[0]
