from __future__ import annotations

import asyncio
import copy
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence

from esim_backend.exceptions import CatalogError
from esim_backend.services.async_supabase import Condition, Ordering
from esim_backend.services.llm import BaseStructuredGenerator


def _like(value: Any, pattern: str) -> bool:
    if value is None:
        return False
    regex = "^" + ".*".join(re.escape(part) for part in pattern.split("%")) + "$"
    return re.match(regex, str(value), flags=re.DOTALL) is not None


def _matches(row: Dict[str, Any], condition: Condition) -> bool:
    value = row.get(condition.column)
    if condition.op == "eq":
        return value == condition.value
    if condition.op == "like":
        return _like(value, condition.value)
    if condition.op == "gte":
        return value is not None and value >= condition.value
    raise AssertionError(f"unexpected operator {condition.op}")


class InMemorySupabase:
    """
    Stand-in for AsyncSupabase over in-memory tables.

    Evaluates eq/like/gte conditions, multi-column ordering (nulls last) and
    limits the way PostgREST does, records every call, and can be told to
    fail for a table.
    """

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }
        self.calls: List[Dict[str, Any]] = []
        self.failing: Dict[str, str] = {}
        self.rpc_results: Dict[str, Any] = {}

    def fail(self, table: str, message: str = "connection refused") -> None:
        self.failing[table] = message

    def _check(self, table: str) -> None:
        if table in self.failing:
            raise CatalogError(f"SELECT {table} failed: {self.failing[table]}", table=table)

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Dict[str, Any]] = None,
        conditions: Sequence[Condition] = (),
        order: Sequence[Ordering] = (),
        limit: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        self.calls.append({
            "op": "select",
            "table": table,
            "filters": dict(filters or {}),
            "conditions": tuple(conditions),
            "order": tuple(order),
            "limit": limit,
        })
        self._check(table)

        all_conditions = [Condition(k, "eq", v) for k, v in (filters or {}).items()] + list(conditions)
        rows = [row for row in self.tables.get(table, []) if all(_matches(row, c) for c in all_conditions)]

        for ordering in reversed(list(order)):
            present = [row for row in rows if row.get(ordering.column) is not None]
            missing = [row for row in rows if row.get(ordering.column) is None]
            present.sort(key=lambda row: row[ordering.column], reverse=not ordering.ascending)
            rows = present + missing

        if limit:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    async def insert(self, table, data, upsert=False, on_conflict="id", timeout=None):
        self.calls.append({"op": "insert", "table": table, "rows": len(data), "upsert": upsert, "on_conflict": on_conflict})
        self._check(table)
        target = self.tables.setdefault(table, [])
        for row in data:
            if upsert:
                target[:] = [existing for existing in target if existing.get(on_conflict) != row.get(on_conflict)]
            target.append(dict(row))
        return [dict(row) for row in data]

    async def delete_all(self, table, key_column="id", timeout=None):
        self.calls.append({"op": "delete_all", "table": table})
        self._check(table)
        self.tables[table] = []

    async def rpc(self, function, params=None, timeout=None):
        self.calls.append({"op": "rpc", "function": function, "params": params})
        self._check(function)
        return self.rpc_results.get(function, [])

    async def health_check(self, table: str) -> bool:
        return table not in self.failing

    def selects(self, table: Optional[str] = None) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["op"] == "select" and (table is None or c["table"] == table)]


class StubGenerator(BaseStructuredGenerator):
    """Deterministic generator: returns a fixed record or raises."""

    def __init__(self, record: Any = None, error: Optional[Exception] = None) -> None:
        self.record = record
        self.error = error
        self.prompts: List[str] = []
        self.schemas: List[Dict[str, Any]] = []

    async def generate(self, prompt: str, schema: Dict[str, Any]) -> Any:
        self.prompts.append(prompt)
        self.schemas.append(schema)
        if self.error is not None:
            raise self.error
        return copy.deepcopy(self.record)


def plan_ids(rows: Iterable[Any]) -> List[Any]:
    return [row["id"] if isinstance(row, dict) else row.id for row in rows]


def run(coro):
    """Helper to run async functions in synchronous tests."""
    return asyncio.run(coro)
