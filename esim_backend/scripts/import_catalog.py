#!/usr/bin/env python3
"""
Import the eSIM catalog into Supabase.

This script:
1. Loads countries and plans from CSV files
2. Validates every row against the catalog models
3. Upserts them into the countries and plans tables
4. Rebuilds the semantic document index (documents table) from the same CSVs
   plus any extra reference CSVs, deleting previous documents first so a
   re-import does not duplicate them

Usage:
    python -m esim_backend.scripts.import_catalog \
        --countries countries.csv --plans beliesim_sample_product.csv \
        [--documents besims-two.csv ...] [--skip-embeddings]
"""

from __future__ import annotations

import argparse
import asyncio
import csv
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from langchain_core.documents import Document
from pydantic import BaseModel, ValidationError

from ..config import Settings, get_settings
from ..models import CountryRecord, PlanRecord
from ..services.async_supabase import AsyncSupabase, wire_number
from ..services.catalog import get_supabase_client
from ..services.retrieval import SupabaseContextRetriever, create_embeddings

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

INT_COLUMNS = {"duration_in_days"}
NUMERIC_COLUMNS = {"data_amount"}


def read_csv(path: Path) -> List[Dict[str, str]]:
    with path.open(newline="", encoding="utf-8-sig") as f:
        return [
            {key.strip(): (value.strip() if isinstance(value, str) else value) for key, value in row.items() if key}
            for row in csv.DictReader(f)
        ]


def _number(value: str, cast):
    """Cast numeric text; unparseable text is returned as-is so validation rejects the row."""
    try:
        return cast(value)
    except ValueError:
        pass
    try:
        return cast(float(value))
    except ValueError:
        return value


def _whole_or_float(value: str):
    """"5" and "5.0" -> 5, "1.5" -> 1.5"""
    try:
        return int(value)
    except ValueError:
        return wire_number(_number(value, float))


def coerce_country_row(row: Dict[str, str]) -> Dict[str, Any]:
    return {key: (value if value != "" else None) for key, value in row.items()}


def coerce_plan_row(row: Dict[str, str], price_column: str) -> Dict[str, Any]:
    """CSV strings -> typed plan row. Empty cells become None."""
    coerced: Dict[str, Any] = {}
    for key, value in row.items():
        if value == "":
            coerced[key] = None
        elif key in INT_COLUMNS:
            coerced[key] = _number(value, int)
        elif key in NUMERIC_COLUMNS or key == price_column:
            coerced[key] = _whole_or_float(value)
        elif key == "id" and value.isdigit():
            coerced[key] = int(value)
        elif key == "data_unit":
            coerced[key] = value.upper()
        else:
            coerced[key] = value
    return coerced


def validate_rows(
    rows: Sequence[Dict[str, Any]],
    model: type[BaseModel],
    label: str,
) -> Tuple[List[Dict[str, Any]], List[Tuple[int, str]]]:
    """Split rows into (accepted, rejected). CSV line numbers start at 2 (after the header)."""
    accepted: List[Dict[str, Any]] = []
    rejected: List[Tuple[int, str]] = []
    for index, row in enumerate(rows):
        try:
            model.model_validate(row)
        except (ValidationError, ValueError) as e:
            rejected.append((index + 2, str(e).splitlines()[0]))
            continue
        accepted.append(row)

    for line, reason in rejected:
        logger.warning(f"⚠️  {label} line {line} rejected: {reason}")
    logger.info(f"✅ {label}: {len(accepted)} valid row(s), {len(rejected)} rejected")
    return accepted, rejected


def rows_to_documents(rows: Sequence[Dict[str, Any]], source: str) -> List[Document]:
    """One document per CSV row, "column: value" per line."""
    return [
        Document(
            page_content="\n".join(f"{key}: {'' if value is None else value}" for key, value in row.items()),
            metadata={"source": source, "row": index},
        )
        for index, row in enumerate(rows)
    ]


async def upsert_batches(
    client: AsyncSupabase,
    table: str,
    rows: Sequence[Dict[str, Any]],
    on_conflict: Optional[str],
    batch_size: int = 500,
) -> int:
    written = 0
    for start in range(0, len(rows), batch_size):
        batch = list(rows[start:start + batch_size])
        if on_conflict:
            await client.insert(table, batch, upsert=True, on_conflict=on_conflict, timeout=30.0)
        else:
            await client.insert(table, batch, timeout=30.0)
        written += len(batch)
    logger.info(f"📥 {table}: wrote {written} row(s)")
    return written


async def import_catalog(
    countries_path: Path,
    plans_path: Path,
    document_paths: Sequence[Path] = (),
    skip_embeddings: bool = False,
    client: Optional[AsyncSupabase] = None,
    retriever: Optional[SupabaseContextRetriever] = None,
    settings: Optional[Settings] = None,
) -> Dict[str, int]:
    """Run the import. Returns counts per step."""
    settings = settings or get_settings()
    client = client or get_supabase_client()

    countries, rejected_countries = validate_rows(
        [coerce_country_row(row) for row in read_csv(countries_path)], CountryRecord, "countries"
    )
    plan_rows = [coerce_plan_row(row, settings.plan_price_column) for row in read_csv(plans_path)]
    plans, rejected_plans = validate_rows(plan_rows, PlanRecord, "plans")

    summary = {
        "countries": await upsert_batches(client, settings.countries_table, countries, on_conflict="code"),
        "plans": await upsert_batches(
            client,
            settings.plans_table,
            plans,
            on_conflict="id" if plans and all(row.get("id") is not None for row in plans) else None,
        ),
        "rejected": len(rejected_countries) + len(rejected_plans),
        "documents": 0,
    }

    if skip_embeddings:
        logger.info("ℹ️  Skipping document index rebuild (--skip-embeddings)")
        return summary

    documents = rows_to_documents(plans, str(plans_path)) + rows_to_documents(countries, str(countries_path))
    for path in document_paths:
        documents.extend(rows_to_documents(read_csv(path), str(path)))

    retriever = retriever or SupabaseContextRetriever(
        client=client,
        embeddings=create_embeddings(settings),
        table=settings.documents_table,
        query_function=settings.match_documents_function,
        k=settings.retrieval_k,
    )
    await retriever.clear()
    summary["documents"] = await retriever.add_documents(documents)
    return summary


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import eSIM countries and plans into Supabase")
    parser.add_argument("--countries", type=Path, required=True, help="CSV with code,name columns")
    parser.add_argument("--plans", type=Path, required=True, help="CSV with plan rows")
    parser.add_argument(
        "--documents",
        type=Path,
        nargs="*",
        default=[],
        help="Extra reference CSVs to index for context retrieval",
    )
    parser.add_argument("--skip-embeddings", action="store_true", help="Do not rebuild the document index")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    for path in [args.countries, args.plans, *args.documents]:
        if not path.exists():
            logger.error(f"❌ File not found: {path}")
            return 1

    logger.info("=" * 70)
    logger.info("🚀 STARTING CATALOG IMPORT")
    logger.info("=" * 70)

    summary = asyncio.run(import_catalog(
        args.countries,
        args.plans,
        document_paths=args.documents,
        skip_embeddings=args.skip_embeddings,
    ))

    logger.info(
        f"🎉 Import complete: {summary['countries']} countries, {summary['plans']} plans, "
        f"{summary['documents']} documents, {summary['rejected']} rejected row(s)"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
