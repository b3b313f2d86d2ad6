"""
Pytest configuration for the Money Tracker backend.

Provides fixtures for:
- Settings with test-specific overrides (fast, single-attempt backoff)
- In-memory stand-ins for the psycopg async pool, connection and cursor
- A pool manager stand-in for service and CLI tests
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, AsyncIterator, List, Optional

import pytest

from money_tracker.config import Settings


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "mymoney_test"),
        db_connect_attempts=1,
        db_backoff_min=0,
        db_backoff_max=0,
        log_level="DEBUG",
    )


class FakeCursor:
    def __init__(self, rows: List[dict], rowcount: int) -> None:
        self._rows = rows
        self.rowcount = rowcount

    async def fetchall(self) -> List[dict]:
        return list(self._rows)

    async def fetchone(self) -> Optional[dict]:
        return self._rows[0] if self._rows else None


class FakeConnection:
    """Records every statement; answers with canned rows or raises `error`."""

    def __init__(
        self,
        rows: Optional[List[dict]] = None,
        rowcount: int = 0,
        error: Optional[BaseException] = None,
    ) -> None:
        self.rows = rows or []
        self.rowcount = rowcount
        self.error = error
        self.calls: List[tuple[str, Any]] = []

    async def execute(self, sql: str, params: Any = None) -> FakeCursor:
        self.calls.append((sql, params))
        if self.error is not None:
            raise self.error
        return FakeCursor(self.rows, self.rowcount)


class FakePool:
    def __init__(
        self,
        conn: Optional[FakeConnection] = None,
        checkout_error: Optional[BaseException] = None,
    ) -> None:
        self.conn = conn or FakeConnection()
        self.checkout_error = checkout_error
        self.closed = False

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[FakeConnection]:
        if self.checkout_error is not None:
            raise self.checkout_error
        yield self.conn

    async def close(self) -> None:
        self.closed = True


class FakePoolManager:
    """Hands out a fixed pool, or raises `error` the way a failed construction would."""

    def __init__(
        self, pool: Optional[FakePool] = None, error: Optional[BaseException] = None
    ) -> None:
        self.pool = pool or FakePool()
        self.error = error
        self.closed = False

    async def get_pool(self) -> FakePool:
        if self.error is not None:
            raise self.error
        return self.pool

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_conn() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def fake_pool(fake_conn: FakeConnection) -> FakePool:
    return FakePool(fake_conn)


@pytest.fixture
def fake_manager(fake_pool: FakePool) -> FakePoolManager:
    return FakePoolManager(fake_pool)


@pytest.fixture
def coffee_row() -> dict:
    """A row as psycopg's dict_row factory returns it."""
    return {
        "id": 7,
        "name": "Coffee",
        "amount": Decimal("-4.50"),
        "date": datetime(2024, 1, 5),
        "notes": "",
        "attachment": "",
    }
