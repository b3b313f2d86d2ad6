"""
Request-facing service for the Money Tracker backend.

Every operation passes the same gate: await the pool manager (constructing the
pool on the first request), then run one repository call. Whatever fails,
construction or query, is logged with its full traceback and turned into a
uniform failure result; callers never see driver diagnostics.

Usage (e.g. from a request handler):
    from money_tracker.service import RecordService

    service = RecordService(PoolManager(get_settings()))
    result = await service.list_recent()
    return result["status"], result.get("data")
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Awaitable, Callable, List, Optional, TypedDict

from pydantic import BaseModel

from money_tracker.domain.models import RecordInput
from money_tracker.infrastructure.db_factory import PoolManager
from money_tracker.repository.records import RecordRepository
from money_tracker.utils.logging import get_logger

log = get_logger(__name__)

GENERIC_FAILURE_MESSAGE = "Internal server error"
INSERT_MESSAGE = "Insert successful"
UPDATE_MESSAGE = "Update successful"
DELETE_MESSAGE = "Delete successful"


class OperationResult(TypedDict, total=False):
    """
    Outcome of one service operation.

    `status` is the HTTP status a handler would answer with; `data` is already
    JSON-serialisable.
    """

    ok: bool
    status: int
    message: Optional[str]
    data: Any
    record_id: int
    rows_affected: int


def _dump(model: BaseModel) -> dict:
    return model.model_dump(by_alias=True, mode="json")


def _dump_all(models: List[Any]) -> List[dict]:
    return [_dump(model) for model in models]


class RecordService:
    """Gatekeeper between request handlers and the record repository."""

    def __init__(self, manager: PoolManager) -> None:
        self._manager = manager

    async def _run(
        self,
        operation: str,
        call: Callable[[RecordRepository], Awaitable[OperationResult]],
    ) -> OperationResult:
        try:
            pool = await self._manager.get_pool()
            result = await call(RecordRepository(pool))
        except Exception:  # noqa: BLE001 - every failure maps to the generic 500
            log.exception(f"[OPERATION FAILED] {operation}", extra={"operation": operation})
            return OperationResult(ok=False, status=500, message=GENERIC_FAILURE_MESSAGE)
        result.setdefault("ok", True)
        result.setdefault("status", 200)
        log.debug(f"[OPERATION OK] {operation}", extra={"operation": operation})
        return result

    async def ready(self) -> OperationResult:
        """Construct the pool (and schema) if needed; no statement runs."""

        async def call(repo: RecordRepository) -> OperationResult:
            return OperationResult(message="Database ready")

        return await self._run("ready", call)

    async def dashboard(self, as_of: Optional[datetime] = None) -> OperationResult:
        async def call(repo: RecordRepository) -> OperationResult:
            return OperationResult(data=_dump(await repo.dashboard_summary(as_of)))

        return await self._run("dashboard", call)

    async def list_records(self) -> OperationResult:
        async def call(repo: RecordRepository) -> OperationResult:
            return OperationResult(data=_dump_all(await repo.list_all()))

        return await self._run("list_records", call)

    async def list_recent(self) -> OperationResult:
        async def call(repo: RecordRepository) -> OperationResult:
            return OperationResult(data=_dump_all(await repo.list_recent()))

        return await self._run("list_recent", call)

    async def top_expenses(self) -> OperationResult:
        async def call(repo: RecordRepository) -> OperationResult:
            return OperationResult(data=_dump_all(await repo.top_expenses()))

        return await self._run("top_expenses", call)

    async def get_record(self, record_id: int) -> OperationResult:
        """`data` is a list holding zero or one record."""

        async def call(repo: RecordRepository) -> OperationResult:
            record = await repo.get_by_id(record_id)
            return OperationResult(data=[_dump(record)] if record is not None else [])

        return await self._run("get_record", call)

    async def search_records(self, term: str) -> OperationResult:
        async def call(repo: RecordRepository) -> OperationResult:
            return OperationResult(data=_dump_all(await repo.search(term)))

        return await self._run("search_records", call)

    async def insert_record(self, record: RecordInput) -> OperationResult:
        async def call(repo: RecordRepository) -> OperationResult:
            record_id = await repo.insert(record)
            return OperationResult(message=INSERT_MESSAGE, record_id=record_id)

        return await self._run("insert_record", call)

    async def update_record(self, record_id: int, record: RecordInput) -> OperationResult:
        """An unknown id is still a success, with `rows_affected` 0."""

        async def call(repo: RecordRepository) -> OperationResult:
            affected = await repo.update(record_id, record)
            return OperationResult(
                message=UPDATE_MESSAGE, record_id=record_id, rows_affected=affected
            )

        return await self._run("update_record", call)

    async def delete_record(self, record_id: int) -> OperationResult:
        """An unknown id is still a success, with `rows_affected` 0."""

        async def call(repo: RecordRepository) -> OperationResult:
            affected = await repo.delete(record_id)
            return OperationResult(
                message=DELETE_MESSAGE, record_id=record_id, rows_affected=affected
            )

        return await self._run("delete_record", call)

    async def close(self) -> None:
        await self._manager.close()


__all__ = [
    "DELETE_MESSAGE",
    "GENERIC_FAILURE_MESSAGE",
    "INSERT_MESSAGE",
    "OperationResult",
    "RecordService",
    "UPDATE_MESSAGE",
]
