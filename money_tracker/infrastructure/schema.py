"""
Schema bootstrap for the `records` table.

Runs on every cold start before the pool is handed out; the statement is
idempotent so repeated calls are harmless.
"""

from __future__ import annotations

import psycopg
from psycopg import errors as pg_errors
from psycopg_pool import AsyncConnectionPool

from money_tracker.errors import SchemaError
from money_tracker.utils.logging import get_logger

log = get_logger(__name__)

CREATE_RECORDS_TABLE = """
CREATE TABLE IF NOT EXISTS public.records (
    id BIGSERIAL PRIMARY KEY,
    name VARCHAR(25) NOT NULL,
    amount NUMERIC(14, 2) NOT NULL,
    date TIMESTAMP NOT NULL,
    notes TEXT NOT NULL DEFAULT '',
    attachment VARCHAR(255) NOT NULL DEFAULT ''
);
"""


async def ensure_schema(pool: AsyncConnectionPool) -> None:
    """
    Create the records table if it does not exist.

    Raises
    ------
    SchemaError
        If the statement fails for any reason other than the table already
        existing (e.g. insufficient privileges).
    """
    try:
        async with pool.connection() as conn:
            await conn.execute(CREATE_RECORDS_TABLE)
    except (pg_errors.DuplicateTable, pg_errors.UniqueViolation):
        # Two processes racing on IF NOT EXISTS; the other one won.
        log.debug("records table created concurrently by another process")
    except psycopg.Error as exc:
        raise SchemaError(f"Unable to create records table: {exc}") from exc
    log.info("Ensured that table 'records' exists")


__all__ = ["CREATE_RECORDS_TABLE", "ensure_schema"]
