"""
Integration tests for the Money Tracker data-access layer.

These tests run against a real PostgreSQL instance and verify that:
1. Schema bootstrap is idempotent
2. Concurrent first requests share one pool
3. Records round-trip, update, delete and order as expected

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import asyncio
import os
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio

from money_tracker.domain.models import RecordInput
from money_tracker.infrastructure.db_factory import PoolManager
from money_tracker.infrastructure.schema import ensure_schema
from money_tracker.repository.records import RecordRepository
from money_tracker.service import RecordService

CONCURRENT_REQUESTS = 20
SEEDED_RECORDS = 15
PAGE_SIZE = 10

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Integration tests require RUN_INTEGRATION_TESTS=1 and reachable Postgres",
)


@pytest_asyncio.fixture
async def manager(test_settings):
    mgr = PoolManager(test_settings)
    pool = await mgr.get_pool()
    async with pool.connection() as conn:
        await conn.execute("TRUNCATE TABLE public.records RESTART IDENTITY;")
    yield mgr
    await mgr.close()


@pytest_asyncio.fixture
async def repo(manager) -> RecordRepository:
    return RecordRepository(await manager.get_pool())


def _record(name: str, amount: str, day: datetime, notes: str = "") -> RecordInput:
    return RecordInput(name=name, amount=Decimal(amount), date=day, notes=notes)


@pytest.mark.asyncio
async def test_schema_bootstrap_is_idempotent(manager) -> None:
    pool = await manager.get_pool()
    for _ in range(3):
        await ensure_schema(pool)

    async with pool.connection() as conn:
        cur = await conn.execute(
            "SELECT COUNT(*) AS n FROM information_schema.tables"
            " WHERE table_schema = 'public' AND table_name = 'records';"
        )
        row = await cur.fetchone()
    assert row["n"] == 1


@pytest.mark.asyncio
async def test_concurrent_first_requests_share_one_pool(test_settings) -> None:
    mgr = PoolManager(test_settings)
    try:
        pools = await asyncio.gather(*(mgr.get_pool() for _ in range(CONCURRENT_REQUESTS)))
        assert len({id(pool) for pool in pools}) == 1
    finally:
        await mgr.close()


@pytest.mark.asyncio
async def test_insert_then_get_round_trips(repo) -> None:
    url = "https://storage.googleapis.com/money/receipt.png"
    with_attachment = RecordInput(
        name="Groceries",
        amount=Decimal("-52.30"),
        date=datetime(2024, 1, 7, 18, 0),
        notes="weekly shop",
        attachment=url,
    )
    without_attachment = _record("Coffee", "-4.50", datetime(2024, 1, 5))

    first = await repo.get_by_id(await repo.insert(with_attachment))
    second = await repo.get_by_id(await repo.insert(without_attachment))

    assert first is not None and second is not None
    assert first.model_dump(exclude={"id"}) == with_attachment.model_dump()
    assert second.attachment == ""
    assert second.id != first.id


@pytest.mark.asyncio
async def test_update_changes_only_target_row(repo) -> None:
    target = await repo.insert(_record("Coffee", "-4.50", datetime(2024, 1, 5)))
    other = await repo.insert(_record("Rent", "-900", datetime(2024, 1, 1)))
    edited = _record("Tea", "-3.20", datetime(2024, 1, 6), notes="switched")

    assert await repo.update(target, edited) == 1

    updated = await repo.get_by_id(target)
    untouched = await repo.get_by_id(other)
    assert updated is not None and updated.id == target
    assert updated.model_dump(exclude={"id"}) == edited.model_dump()
    assert untouched is not None and untouched.name == "Rent"


@pytest.mark.asyncio
async def test_edit_and_delete_of_missing_id_are_no_ops(manager, repo) -> None:
    await repo.insert(_record("Coffee", "-4.50", datetime(2024, 1, 5)))
    service = RecordService(manager)

    updated = await service.update_record(999, _record("Ghost", "1", datetime(2024, 1, 1)))
    deleted = await service.delete_record(999)

    assert updated["ok"] and updated["rows_affected"] == 0
    assert deleted["ok"] and deleted["rows_affected"] == 0
    assert len(await repo.list_all()) == 1


@pytest.mark.asyncio
async def test_recent_and_top_expense_ordering(repo) -> None:
    start = datetime(2024, 1, 1)
    for i in range(SEEDED_RECORDS):
        amount = f"-{i + 1}.00" if i % 2 else f"{i + 1}.00"
        await repo.insert(_record(f"item {i}", amount, start + timedelta(days=i)))

    recent = await repo.list_recent()
    expenses = await repo.top_expenses()

    assert len(recent) == PAGE_SIZE
    assert [r.date for r in recent] == sorted((r.date for r in recent), reverse=True)
    assert recent[0].date == start + timedelta(days=SEEDED_RECORDS - 1)
    assert all(r.amount < 0 for r in expenses)
    assert [r.amount for r in expenses] == sorted(r.amount for r in expenses)
    assert expenses[0].amount == Decimal("-14.00")


@pytest.mark.asyncio
async def test_search_is_case_insensitive_and_literal(repo) -> None:
    await repo.insert(_record("Coffee", "-4.50", datetime(2024, 1, 5)))
    await repo.insert(_record("Lunch", "-12", datetime(2024, 1, 5), notes="coffee after"))
    await repo.insert(_record("Sale", "30", datetime(2024, 1, 5), notes="50% off"))

    assert {r.name for r in await repo.search("COFFEE")} == {"Coffee", "Lunch"}
    assert {r.name for r in await repo.search("%")} == {"Sale"}
    assert await repo.search("' OR '1'='1") == []


@pytest.mark.asyncio
async def test_coffee_scenario_updates_dashboard(repo) -> None:
    january = datetime(2024, 1, 20)
    before = await repo.dashboard_summary(january)

    record_id = await repo.insert(_record("Coffee", "-4.50", datetime(2024, 1, 5)))
    after = await repo.dashboard_summary(january)

    fetched = await repo.get_by_id(record_id)
    assert fetched is not None and fetched.name == "Coffee"
    assert after.month_records >= 1
    assert after.month_records == before.month_records + 1
    assert after.total_amount == before.total_amount - Decimal("4.50")


@pytest.mark.asyncio
async def test_delete_removes_record(repo) -> None:
    record_id = await repo.insert(_record("Coffee", "-4.50", datetime(2024, 1, 5)))

    assert await repo.delete(record_id) == 1
    assert await repo.get_by_id(record_id) is None


@pytest.mark.asyncio
async def test_whitespace_and_scale_survive_storage(repo) -> None:
    submitted = RecordInput(
        name=" Coffee ",
        amount=Decimal("-4.05"),
        date=datetime(2024, 1, 5, 8, 15),
        notes="line one\n",
    )

    stored = await repo.get_by_id(await repo.insert(submitted))

    assert stored is not None
    assert stored.model_dump(exclude={"id"}) == submitted.model_dump()
