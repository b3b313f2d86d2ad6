"""
Record queries.

Every method runs exactly one parameterized, autocommitted statement against
a ready pool. Values always travel as bound parameters, the search term
included. Driver failures surface as `QueryError`, checkout failures as
`PoolTimeoutError`.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import psycopg
from psycopg_pool import AsyncConnectionPool, PoolTimeout, TooManyRequests

from money_tracker.domain.models import DashboardSummary, Record, RecordInput, to_naive_utc
from money_tracker.errors import PoolTimeoutError, QueryError
from money_tracker.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_PAGE_SIZE = 10

_COLUMNS = "id, name, amount, date, notes, attachment"

DASHBOARD_SQL = (
    "SELECT"
    " (SELECT COUNT(*) FROM public.records WHERE date >= %s AND date < %s) AS month_records,"
    " (SELECT SUM(amount) FROM public.records) AS total_amount;"
)
LIST_ALL_SQL = f"SELECT {_COLUMNS} FROM public.records ORDER BY id;"
LIST_RECENT_SQL = f"SELECT {_COLUMNS} FROM public.records ORDER BY date DESC, id DESC LIMIT %s;"
TOP_EXPENSES_SQL = (
    f"SELECT {_COLUMNS} FROM public.records WHERE amount < 0 ORDER BY amount ASC, id LIMIT %s;"
)
GET_BY_ID_SQL = f"SELECT {_COLUMNS} FROM public.records WHERE id = %s;"
SEARCH_SQL = (
    f"SELECT {_COLUMNS} FROM public.records"
    " WHERE name ILIKE %(pattern)s ESCAPE '\\' OR notes ILIKE %(pattern)s ESCAPE '\\'"
    " ORDER BY id;"
)
INSERT_SQL = (
    "INSERT INTO public.records (name, amount, date, notes, attachment)"
    " VALUES (%s, %s, %s, %s, %s) RETURNING id;"
)
UPDATE_SQL = (
    "UPDATE public.records SET name = %s, amount = %s, date = %s, notes = %s, attachment = %s"
    " WHERE id = %s;"
)
DELETE_SQL = "DELETE FROM public.records WHERE id = %s;"


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so `term` matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def month_bounds(as_of: datetime) -> tuple[datetime, datetime]:
    """
    Return the [start, end) range of the calendar month containing `as_of`.

    An aware `as_of` is converted to UTC first, matching how dates are stored.
    """
    start = to_naive_utc(as_of).replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def _diagnostic(exc: psycopg.Error) -> str:
    diag = getattr(exc, "diag", None)
    primary = getattr(diag, "message_primary", None) if diag is not None else None
    return primary or str(exc) or exc.__class__.__name__


class RecordRepository:
    """
    Data access for the `records` table.

    Parameters
    ----------
    pool : AsyncConnectionPool
        A ready pool, as returned by `PoolManager.get_pool()`.
    """

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[Any]:
        try:
            async with self._pool.connection() as conn:
                yield conn
        except (PoolTimeout, TooManyRequests) as exc:
            raise PoolTimeoutError(f"No database connection available: {exc}") from exc
        except psycopg.Error as exc:
            raise QueryError(_diagnostic(exc), sqlstate=exc.sqlstate) from exc

    async def _fetch(self, sql: str, params: Any = None) -> List[Dict[str, Any]]:
        async with self._connection() as conn:
            cur = await conn.execute(sql, params)
            return await cur.fetchall()

    async def _fetchone(self, sql: str, params: Any = None) -> Optional[Dict[str, Any]]:
        async with self._connection() as conn:
            cur = await conn.execute(sql, params)
            return await cur.fetchone()

    async def _execute(self, sql: str, params: Sequence[Any]) -> int:
        async with self._connection() as conn:
            cur = await conn.execute(sql, params)
            return cur.rowcount

    async def dashboard_summary(self, as_of: Optional[datetime] = None) -> DashboardSummary:
        """Records dated in the month of `as_of` (default: now, UTC) and the sum of all amounts."""
        start, end = month_bounds(as_of or datetime.now(timezone.utc))
        row = await self._fetchone(DASHBOARD_SQL, (start, end))
        return DashboardSummary.model_validate(row or {"month_records": 0})

    async def list_all(self) -> List[Record]:
        return [Record.model_validate(row) for row in await self._fetch(LIST_ALL_SQL)]

    async def list_recent(self, limit: int = DEFAULT_PAGE_SIZE) -> List[Record]:
        rows = await self._fetch(LIST_RECENT_SQL, (limit,))
        return [Record.model_validate(row) for row in rows]

    async def top_expenses(self, limit: int = DEFAULT_PAGE_SIZE) -> List[Record]:
        rows = await self._fetch(TOP_EXPENSES_SQL, (limit,))
        return [Record.model_validate(row) for row in rows]

    async def get_by_id(self, record_id: int) -> Optional[Record]:
        """Return the record, or None when no row has this id."""
        row = await self._fetchone(GET_BY_ID_SQL, (record_id,))
        return Record.model_validate(row) if row is not None else None

    async def search(self, term: str) -> List[Record]:
        """Case-insensitive substring match on name or notes."""
        rows = await self._fetch(SEARCH_SQL, {"pattern": f"%{escape_like(term)}%"})
        return [Record.model_validate(row) for row in rows]

    async def insert(self, record: RecordInput) -> int:
        """Insert a record and return the id assigned by the database."""
        row = await self._fetchone(
            INSERT_SQL,
            (record.name, record.amount, record.date, record.notes, record.attachment),
        )
        if row is None:
            raise QueryError("INSERT did not return an id")
        log.info("Record inserted", extra={"record_id": row["id"]})
        return row["id"]

    async def update(self, record_id: int, record: RecordInput) -> int:
        """Replace every mutable field; returns the number of rows changed (0 or 1)."""
        affected = await self._execute(
            UPDATE_SQL,
            (
                record.name,
                record.amount,
                record.date,
                record.notes,
                record.attachment,
                record_id,
            ),
        )
        log.info("Record updated", extra={"record_id": record_id, "rows_affected": affected})
        return affected

    async def delete(self, record_id: int) -> int:
        """Delete a record; returns the number of rows removed (0 or 1)."""
        affected = await self._execute(DELETE_SQL, (record_id,))
        log.info("Record deleted", extra={"record_id": record_id, "rows_affected": affected})
        return affected


__all__ = ["RecordRepository", "escape_like", "month_bounds"]
