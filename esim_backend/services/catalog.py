"""
Catalog access layer.

Typed reads against the two catalog tables:
- countries: reference data (code, name)
- plans: eSIM data plans (country_code, data_amount, data_unit,
  duration_in_days, price, passthrough columns)

No business logic lives here: callers describe what they want with a
PlanQuery and get PlanRecords back.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from ..config import Settings, get_settings
from ..exceptions import CatalogError, ConfigurationError
from ..models import CountryRecord, PlanRecord
from .async_supabase import AsyncSupabase, Condition, Ordering

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanQuery:
    """Filter/sort/limit description for the plans table"""
    conditions: Tuple[Condition, ...] = ()
    order: Tuple[Ordering, ...] = ()
    limit: Optional[int] = None

    def where(self, column: str, op: str, value) -> "PlanQuery":
        return PlanQuery(
            conditions=self.conditions + (Condition(column, op, value),),
            order=self.order,
            limit=self.limit,
        )

    def order_by(self, column: str, ascending: bool = True) -> "PlanQuery":
        return PlanQuery(
            conditions=self.conditions,
            order=self.order + (Ordering(column, ascending),),
            limit=self.limit,
        )

    def take(self, limit: int) -> "PlanQuery":
        return PlanQuery(conditions=self.conditions, order=self.order, limit=limit)


class CatalogService:
    """Read operations over the countries and plans tables."""

    def __init__(self, client: AsyncSupabase, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or get_settings()
        self.countries_table = self.settings.countries_table
        self.plans_table = self.settings.plans_table

    async def find_countries(self, name: str) -> List[CountryRecord]:
        """Countries whose name equals `name` exactly (stored casing)."""
        rows = await self.client.select(
            self.countries_table,
            filters={"name": name},
        )
        return [self._to_model(CountryRecord, row, self.countries_table) for row in rows]

    async def find_plans(self, query: PlanQuery) -> List[PlanRecord]:
        rows = await self.client.select(
            self.plans_table,
            conditions=query.conditions,
            order=query.order,
            limit=query.limit,
        )
        return [self._to_model(PlanRecord, row, self.plans_table) for row in rows]

    async def health_check(self) -> bool:
        return await self.client.health_check(self.countries_table)

    @staticmethod
    def _to_model(model, row, table: str):
        try:
            return model.model_validate(row)
        except PydanticValidationError as e:
            raise CatalogError(f"Malformed row in {table}: {e}", table=table) from e


@lru_cache
def get_supabase_client() -> AsyncSupabase:
    """Shared AsyncSupabase instance built from settings."""
    settings = get_settings()
    if not settings.supabase_enabled:
        raise ConfigurationError("SUPABASE_URL and SUPABASE_ANON_KEY are required")
    return AsyncSupabase(
        settings.supabase_url,
        settings.supabase_anon_key,
        timeout=settings.supabase_timeout,
    )
