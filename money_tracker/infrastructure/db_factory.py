"""
Connection pool factory for the Money Tracker backend.

The PoolManager owns the process-wide async PostgreSQL pool. The first caller
of `get_pool()` runs the construction sequence

    credential resolution -> pool open (with exponential backoff) -> schema bootstrap

and every caller arriving while it runs awaits the same construction. The pool
is only published once the schema exists. A failed construction leaves the
manager uninitialized so the next caller starts over.

Includes retry logic for transient connection failures using tenacity.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, Dict, Optional

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from money_tracker.config import Settings, get_settings
from money_tracker.errors import PoolConstructionError
from money_tracker.infrastructure.schema import ensure_schema
from money_tracker.infrastructure.secrets import resolve_credentials
from money_tracker.utils.logging import get_logger

log = get_logger(__name__)

APPLICATION_NAME = "money-tracker"


def build_conninfo(settings: Settings) -> str:
    """
    Compose a libpq connection string from settings.

    A configured unix socket directory takes precedence over the TCP host;
    libpq treats a host starting with "/" as a socket directory.
    """
    params: Dict[str, Any] = {
        "dbname": settings.db_name,
        "user": settings.db_user,
        "password": settings.db_password,
        "connect_timeout": max(1, math.ceil(settings.db_connect_timeout)),
        "application_name": APPLICATION_NAME,
    }
    if settings.uses_unix_socket:
        params["host"] = settings.instance_unix_socket
    else:
        params["host"] = settings.db_host
        params["port"] = settings.db_port
    return make_conninfo(**params)


async def _open_pool_once(settings: Settings) -> AsyncConnectionPool:
    pool = AsyncConnectionPool(
        conninfo=build_conninfo(settings),
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        # checkout wait; PoolTimeout when exceeded
        timeout=settings.db_acquire_timeout,
        # 0 means an unbounded waiting queue
        max_waiting=settings.db_pool_queue_limit,
        kwargs={"autocommit": True, "row_factory": dict_row},
        name=APPLICATION_NAME,
        open=False,
    )
    try:
        await pool.open(wait=True, timeout=settings.db_connect_timeout)
    except BaseException:
        await pool.close()
        raise
    return pool


async def open_pool(settings: Settings) -> AsyncConnectionPool:
    """
    Open a connection pool, retrying with exponential backoff.

    Parameters
    ----------
    settings : Settings
        Settings with the effective password already resolved.

    Returns
    -------
    AsyncConnectionPool
        An open pool holding at least `db_pool_min_size` connections.

    Raises
    ------
    PoolConstructionError
        If the pool cannot be opened after `db_connect_attempts` attempts,
        or if the pool limits are invalid.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(settings.db_connect_attempts),
        wait=wait_exponential(
            multiplier=1, min=settings.db_backoff_min, max=settings.db_backoff_max
        ),
        retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
        before_sleep=before_sleep_log(log, logging.WARNING),
        reraise=True,
    )
    target = settings.instance_unix_socket if settings.uses_unix_socket else (
        f"{settings.db_host}:{settings.db_port}"
    )
    log.info(
        "Opening connection pool",
        extra={
            "target": target,
            "socket": settings.uses_unix_socket,
            "max_size": settings.db_pool_max_size,
        },
    )
    try:
        return await retrying(_open_pool_once, settings)
    # ValueError: pool limits rejected by AsyncConnectionPool
    except (psycopg.Error, ValueError) as exc:
        raise PoolConstructionError(f"Unable to open connection pool to {target}: {exc}") from exc


def _consume_exception(task: "asyncio.Future[Any]") -> None:
    # every waiter may have been cancelled before construction failed
    if not task.cancelled():
        task.exception()


class PoolManager:
    """
    Lazily constructed, shared connection pool.

    Construction is coalesced: concurrent first callers share one in-flight
    construction task and observe the same pool or the same exception.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        secret_client: Any = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._secret_client = secret_client
        self._resolved_settings: Optional[Settings] = None
        self._pool: Optional[AsyncConnectionPool] = None
        self._building: Optional[asyncio.Task[AsyncConnectionPool]] = None
        self._lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return self._pool is not None

    async def get_pool(self) -> AsyncConnectionPool:
        """
        Return the ready pool, constructing it on first use.

        Raises
        ------
        SecretFetchError, SecretFormatError
            Credential resolution failed.
        PoolConstructionError
            The pool could not be opened.
        SchemaError
            The records table could not be created.
        """
        pool = self._pool
        if pool is not None:
            return pool
        async with self._lock:
            if self._pool is not None:
                return self._pool
            if self._building is None:
                self._building = asyncio.ensure_future(self._construct())
                self._building.add_done_callback(_consume_exception)
            building = self._building
        # shield: a cancelled caller must not abort construction for the others
        return await asyncio.shield(building)

    async def _construct(self) -> AsyncConnectionPool:
        try:
            if self._resolved_settings is None:
                self._resolved_settings = await resolve_credentials(
                    self._settings, client=self._secret_client
                )
            pool = await open_pool(self._resolved_settings)
            try:
                await ensure_schema(pool)
            except BaseException:
                await pool.close()
                raise
            self._pool = pool
            log.info("Connection pool ready")
            return pool
        except Exception:
            log.exception("Connection pool construction failed")
            raise
        finally:
            self._building = None

    async def close(self) -> None:
        """
        Close the managed pool and release its connections.

        A construction still in flight is awaited first so the pool it
        produces is closed too. The manager returns to the uninitialized
        state; a later `get_pool()` builds a new pool.
        """
        building = self._building
        if building is not None:
            await asyncio.wait([building])
        async with self._lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            await pool.close()
            log.info("Connection pool closed")


__all__ = ["PoolManager", "build_conninfo", "open_pool"]
