"""
Shared pytest fixtures for the plan finder tests.

Catalog snapshot used throughout:

    Japan (JP)        5, 10, 10, 15, 30 day plans in GB
    China (CN)        one MB plan, one GB plan
    South Korea       code stored with a region suffix (KR-SEL)
    Indonesia (ID)    in the reference set but without plans
"""
from __future__ import annotations

import os
from typing import Any, Dict, List

import pytest

# Set test environment before importing application modules
os.environ.setdefault("NODE_ENV", "test")
os.environ.setdefault("ENABLE_RETRIEVAL", "false")

from esim_backend.config import Settings  # noqa: E402
from esim_backend.routing.match_resolver import MatchResolver  # noqa: E402
from esim_backend.services.catalog import CatalogService  # noqa: E402
from esim_backend.services.intent_extractor import IntentExtractor  # noqa: E402
from esim_backend.services.pipeline import PlanFinder  # noqa: E402

from esim_backend.tests.utils import InMemorySupabase, StubGenerator  # noqa: E402


# ============================================================================
# Data Fixtures
# ============================================================================

@pytest.fixture
def countries() -> List[Dict[str, Any]]:
    return [
        {"code": "JP", "name": "Japan"},
        {"code": "CN", "name": "China"},
        {"code": "KR", "name": "South Korea"},
        {"code": "ID", "name": "Indonesia"},
    ]


@pytest.fixture
def plans() -> List[Dict[str, Any]]:
    return [
        {"id": 1, "country_code": "JP", "plan_option": "Japan 1GB / 5 Days", "data_amount": 1, "data_unit": "GB", "duration_in_days": 5, "idr_price": 50000, "created_at": "2024-05-01T00:00:00+00:00"},
        {"id": 2, "country_code": "JP", "plan_option": "Japan 3GB / 10 Days", "data_amount": 3, "data_unit": "GB", "duration_in_days": 10, "idr_price": 90000, "created_at": "2024-05-01T00:00:00+00:00"},
        {"id": 3, "country_code": "JP", "plan_option": "Japan 5GB / 10 Days", "data_amount": 5, "data_unit": "GB", "duration_in_days": 10, "idr_price": 120000, "created_at": "2024-05-01T00:00:00+00:00"},
        {"id": 4, "country_code": "JP", "plan_option": "Japan 10GB / 15 Days", "data_amount": 10, "data_unit": "GB", "duration_in_days": 15, "idr_price": 200000, "created_at": "2024-05-01T00:00:00+00:00"},
        {"id": 5, "country_code": "JP", "plan_option": "Japan 20GB / 30 Days", "data_amount": 20, "data_unit": "GB", "duration_in_days": 30, "idr_price": 350000, "created_at": "2024-05-01T00:00:00+00:00"},
        {"id": 6, "country_code": "CN", "plan_option": "China 500MB / 3 Days", "data_amount": 500, "data_unit": "MB", "duration_in_days": 3, "idr_price": 30000, "created_at": "2024-05-01T00:00:00+00:00"},
        {"id": 7, "country_code": "CN", "plan_option": "China 2GB / 7 Days", "data_amount": 2, "data_unit": "GB", "duration_in_days": 7, "idr_price": 75000, "created_at": "2024-05-01T00:00:00+00:00"},
        {"id": 8, "country_code": "KR-SEL", "plan_option": "Seoul 1GB / 5 Days", "data_amount": 1, "data_unit": "GB", "duration_in_days": 5, "idr_price": 45000, "created_at": "2024-05-01T00:00:00+00:00"},
    ]


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, NODE_ENV="test", ENABLE_RETRIEVAL=False, MATCH_DISPLAY_LIMIT=3)


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def supabase(countries, plans, settings) -> InMemorySupabase:
    return InMemorySupabase({settings.countries_table: countries, settings.plans_table: plans})


@pytest.fixture
def catalog(supabase, settings) -> CatalogService:
    return CatalogService(supabase, settings)


@pytest.fixture
def resolver(catalog, settings) -> MatchResolver:
    return MatchResolver(catalog, settings)


@pytest.fixture
def japan_record() -> Dict[str, Any]:
    return {
        "country_name": "Japan",
        "duration_in_days": 10,
        "chat_response": "Baik! Berikut paket eSIM Jepang untuk 10 hari. Apakah Anda ingin membeli?",
    }


@pytest.fixture
def make_plan_finder(catalog, settings):
    """Factory: PlanFinder over the in-memory catalog with a stubbed generator."""
    def factory(record: Any = None, error: Exception | None = None) -> PlanFinder:
        generator = StubGenerator(record=record, error=error)
        return PlanFinder(IntentExtractor(generator), catalog, settings)
    return factory
