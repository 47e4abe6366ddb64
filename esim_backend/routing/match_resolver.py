"""
Match Resolver - turns an extracted intent into a MatchResult.

Resolution is tiered:

1. Strict pass: every constraint the intent specifies, AND-combined.
   - country_code  LIKE %code%   (codes may carry a region suffix)
   - data_unit     LIKE %unit% AND = unit
   - data_amount   >= amount      (at least what was asked for)
   - duration      = days         (exact duration only)
   Ordered by ascending price, then id. Rows -> Exact.
2. Relaxed pass: country_code LIKE %code% and duration >= days, amount and
   unit dropped. Ordered by descending duration, then price, then id.
   Rows -> CloseMatch.
3. Nothing in either pass -> NoMatch.

A constraint whose input is None is skipped. Both passes are capped at the
configured display limit. Catalog failures propagate as CatalogError and are
never read as "no rows".
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from ..config import Settings, get_settings
from ..models import CloseMatch, DataUnit, Exact, MatchResult, NoMatch
from ..services.catalog import CatalogService, PlanQuery

logger = logging.getLogger(__name__)


class MatchResolver:
    """Tiered plan lookup with a closest-match fallback."""

    def __init__(self, catalog: CatalogService, settings: Optional[Settings] = None):
        self.catalog = catalog
        self.settings = settings or get_settings()
        self.limit = self.settings.match_display_limit
        self.price_column = self.settings.plan_price_column

    def strict_query(
        self,
        code: str,
        amount: Optional[Union[int, float]],
        unit: Optional[DataUnit],
        duration: Optional[int],
    ) -> PlanQuery:
        query = PlanQuery().where("country_code", "like", f"%{code}%")

        if unit is not None:
            unit_value = DataUnit(unit).value
            query = query.where("data_unit", "like", f"%{unit_value}%").where("data_unit", "eq", unit_value)

        if amount is not None:
            query = query.where("data_amount", "gte", amount)

        if duration is not None:
            query = query.where("duration_in_days", "eq", duration)

        return (
            query
            .order_by(self.price_column)
            .order_by("id")
            .take(self.limit)
        )

    def relaxed_query(self, code: str, duration: Optional[int]) -> PlanQuery:
        query = PlanQuery().where("country_code", "like", f"%{code}%")

        if duration is not None:
            query = query.where("duration_in_days", "gte", duration)

        return (
            query
            .order_by("duration_in_days", ascending=False)
            .order_by(self.price_column)
            .order_by("id")
            .take(self.limit)
        )

    async def resolve(
        self,
        code: str,
        amount: Optional[Union[int, float]] = None,
        unit: Optional[DataUnit] = None,
        duration: Optional[int] = None,
    ) -> MatchResult:
        """
        Resolve plans for a country code and optional constraints.

        Args:
            code: Canonical country code from the countries table
            amount: Minimum data amount, None to ignore
            unit: Data unit (MB/GB), None to ignore
            duration: Trip duration in days, None to ignore

        Returns:
            Exact, CloseMatch or NoMatch

        Raises:
            CatalogError: If either catalog query fails
        """
        if not code:
            raise ValueError("country code is required")

        plans = await self.catalog.find_plans(self.strict_query(code, amount, unit, duration))
        if plans:
            logger.info(f"Exact match: {len(plans)} plan(s) for {code}")
            return Exact(plans=tuple(plans))

        logger.info(
            f"No exact match for {code} (amount={amount}, unit={unit}, duration={duration}), "
            f"trying closest matches"
        )
        plans = await self.catalog.find_plans(self.relaxed_query(code, duration))
        if plans:
            logger.info(f"Close match: {len(plans)} plan(s) for {code}")
            return CloseMatch(plans=tuple(plans))

        logger.info(f"No plans for {code}")
        return NoMatch()
