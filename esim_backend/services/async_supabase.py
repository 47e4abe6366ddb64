"""
Non-blocking access to Supabase.

supabase-py's PostgREST builders are synchronous. Every call here builds its
query inside a worker thread, executes it under a timeout and hands back the
``data`` payload. A failed or timed-out call raises CatalogError: callers can
always tell "the table has no such rows" apart from "the table could not be
read".
"""
from __future__ import annotations

import asyncio
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from supabase import Client, create_client

from ..exceptions import CatalogError

logger = logging.getLogger(__name__)

SUPPORTED_OPERATORS = ("eq", "like", "gte")


@dataclass(frozen=True)
class Condition:
    """``column <op> value`` where op is a PostgREST filter method name"""
    column: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in SUPPORTED_OPERATORS:
            raise ValueError(f"Unsupported operator '{self.op}'. Supported: {', '.join(SUPPORTED_OPERATORS)}")


@dataclass(frozen=True)
class Ordering:
    column: str
    ascending: bool = True


def sanitize_for_json(value: Any) -> Any:
    """Replace NaN/Infinity (pandas and CSV artefacts) with None, recursively."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, Mapping):
        return {key: sanitize_for_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [sanitize_for_json(item) for item in value]
    return value


def wire_number(value: Any) -> Any:
    """5.0 -> 5. PostgREST sends values as text and integer columns reject '5.0'."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def apply_query(
    query,
    filters: Optional[Mapping[str, Any]] = None,
    conditions: Sequence[Condition] = (),
    order: Sequence[Ordering] = (),
    limit: Optional[int] = None,
):
    """Chain equality filters, conditions, orderings and a limit onto a builder."""
    for column, value in (filters or {}).items():
        query = query.eq(column, wire_number(value))
    for condition in conditions:
        query = getattr(query, condition.op)(condition.column, wire_number(condition.value))
    for ordering in order:
        query = query.order(ordering.column, desc=not ordering.ascending)
    if limit:
        query = query.limit(limit)
    return query


class AsyncSupabase:
    """
    Thread-pool backed async facade over a supabase-py Client.

    Example:
        >>> db = AsyncSupabase("https://project.supabase.co", "anon-key")
        >>> rows = await db.select(
        ...     "besim",
        ...     conditions=[Condition("country_code", "like", "%JP%")],
        ...     order=[Ordering("idr_price")],
        ...     limit=3,
        ... )
    """

    def __init__(self, url: str, key: str, max_workers: int = 4, timeout: float = 5.0):
        self.client: Client = create_client(url, key)
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="supabase")
        self.url = url
        self.timeout = timeout
        logger.debug(f"AsyncSupabase ready ({max_workers} workers, {timeout}s timeout)")

    async def _call(self, label: str, target: str, build: Callable[[Client], Any], timeout: Optional[float]) -> Any:
        """Build and execute a request off the event loop; return its data."""
        limit = timeout or self.timeout
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(self.executor, lambda: build(self.client).execute())
        try:
            response = await asyncio.wait_for(future, timeout=limit)
        except asyncio.TimeoutError as e:
            logger.warning(f"{label} {target} timed out after {limit}s")
            raise CatalogError(f"{label} {target} timed out after {limit}s", table=target) from e
        except CatalogError:
            raise
        except Exception as e:
            logger.error(f"{label} {target} error: {e}", exc_info=True)
            raise CatalogError(f"{label} {target} failed: {e}", table=target) from e
        return response.data

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
        """
        Read rows.

        ``filters`` are equality matches; ``conditions`` and ``order`` are
        applied in sequence, the first ordering being the primary sort key.

        Raises:
            CatalogError: On client error or timeout
        """
        rows = await self._call(
            "SELECT",
            table,
            lambda client: apply_query(client.table(table).select(columns), filters, conditions, order, limit),
            timeout,
        )
        rows = rows or []
        logger.debug(f"{table}: {len(rows)} row(s)")
        return rows

    async def insert(
        self,
        table: str,
        data: List[Dict[str, Any]],
        upsert: bool = False,
        on_conflict: str = "id",
        timeout: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        """Insert rows, or upsert them on ``on_conflict``. Raises CatalogError."""
        payload = sanitize_for_json(data)

        def build(client: Client):
            if upsert:
                return client.table(table).upsert(payload, on_conflict=on_conflict)
            return client.table(table).insert(payload)

        rows = await self._call("UPSERT" if upsert else "INSERT", table, build, timeout) or []
        logger.debug(f"{table}: wrote {len(rows)} row(s)")
        return rows

    async def delete_all(self, table: str, key_column: str = "id", timeout: Optional[float] = None) -> None:
        """Delete every row. PostgREST rejects unfiltered deletes, hence the not-null filter."""
        await self._call(
            "DELETE",
            table,
            lambda client: client.table(table).delete().not_.is_(key_column, "null"),
            timeout,
        )

    async def rpc(self, function: str, params: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> Any:
        """Call a Postgres function (e.g. match_documents). Raises CatalogError."""
        return await self._call("RPC", function, lambda client: client.rpc(function, params or {}), timeout)

    async def health_check(self, table: str) -> bool:
        try:
            await self.select(table, limit=1, timeout=2.0)
        except CatalogError as e:
            logger.warning(f"Supabase unreachable: {e.message}")
            return False
        return True

    def shutdown(self):
        self.executor.shutdown(wait=True)
