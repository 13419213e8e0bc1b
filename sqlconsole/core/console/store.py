import asyncio
import time
from dataclasses import dataclass
from typing import Any, Iterator, List, Protocol, Sequence

from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from sqlalchemy.pool import QueuePool

from sqlconsole.core.console.scan_types import ScanType, scan_type_for
from sqlconsole.core.schemas import PoolStats, format_duration


# -----------------------------------------------------------------------------
# STORE MODULE
# Purpose: the database capability the console consumes: run one statement and
# hand back a cursor, report connection pool telemetry.
# The pool itself belongs to SQLAlchemy and does its own locking.
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ColumnType:
    """What the store reported for one result column at execution time."""

    name: str
    type_code: Any
    scan_type: ScanType


class Cursor(Protocol):
    """Handle over one executed statement's result."""

    @property
    def returns_rows(self) -> bool:  # pragma: no cover - interface
        ...

    def columns(self) -> List[str]:  # pragma: no cover - interface
        ...

    def column_types(self) -> List[ColumnType]:  # pragma: no cover - interface
        ...

    def __iter__(self) -> Iterator[Sequence[Any]]:  # pragma: no cover - interface
        ...

    async def close(self) -> None:  # pragma: no cover - interface
        ...


class Store(Protocol):
    """Executes free-text statements against a shared connection pool."""

    async def execute(self, query: str) -> Cursor:  # pragma: no cover - interface
        ...

    def pool_stats(self) -> PoolStats:  # pragma: no cover - interface
        ...


def store_error_text(error: BaseException) -> str:
    """
    Return the database's own message for a failure.
    SQLAlchemy wraps driver errors (and appends statement echo and doc links);
    the console passes the driver's text through instead.
    """
    if isinstance(error, DBAPIError) and error.orig is not None:
        driver_error = error.orig.__cause__ or error.orig
        return str(driver_error)
    if isinstance(error, SQLAlchemyError) and error.args:
        return str(error.args[0])
    return str(error) or type(error).__name__


class SQLAlchemyCursor:
    """Cursor over a buffered SQLAlchemy result, holding its pooled connection."""

    def __init__(self, connection: AsyncConnection, result: CursorResult):
        self._connection = connection
        self._result = result
        self._closed = False

    @property
    def returns_rows(self) -> bool:
        return self._result.returns_rows

    def columns(self) -> List[str]:
        if not self.returns_rows:
            return []
        return list(self._result.keys())

    def column_types(self) -> List[ColumnType]:
        if not self.returns_rows:
            return []
        # DBAPI description: (name, type_code, ...); asyncpg reports the type OID
        return [
            ColumnType(name=entry[0], type_code=entry[1], scan_type=scan_type_for(entry[1]))
            for entry in self._result.cursor.description
        ]

    def __iter__(self) -> Iterator[Sequence[Any]]:
        if not self.returns_rows:
            return
        for row in self._result:
            yield tuple(row)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._result.close()
        await self._connection.close()


class PostgresStore:
    """
    Store backed by an async SQLAlchemy engine.

    Each statement checks out its own connection for the lifetime of the cursor.
    The engine is expected to run in AUTOCOMMIT, so every statement stands alone.
    """

    def __init__(self, engine: AsyncEngine, max_overflow: int = 0):
        self.engine = engine
        self.max_overflow = max_overflow
        self._wait_count = 0
        self._wait_seconds = 0.0

    @property
    def capacity(self) -> int:
        """Most connections the pool will open; 0 means unlimited."""
        pool = self.engine.pool
        if not isinstance(pool, QueuePool) or self.max_overflow < 0:
            return 0
        return pool.size() + self.max_overflow

    async def execute(self, query: str) -> SQLAlchemyCursor:
        connection = await self._checkout()
        try:
            # Sent verbatim: no bind-parameter parsing of the free text
            result = await connection.exec_driver_sql(query)
        except asyncio.CancelledError:
            # The server may still be running the statement; never reuse this connection
            await connection.invalidate()
            await connection.close()
            raise
        except Exception:
            await connection.close()
            raise
        return SQLAlchemyCursor(connection, result)

    async def _checkout(self) -> AsyncConnection:
        pool = self.engine.pool
        must_wait = (
            self.capacity > 0
            and isinstance(pool, QueuePool)
            and pool.checkedin() == 0
            and pool.checkedout() >= self.capacity
        )
        started = time.perf_counter()
        connection = await self.engine.connect()
        if must_wait:
            self._wait_count += 1
            self._wait_seconds += time.perf_counter() - started
        return connection

    def pool_stats(self) -> PoolStats:
        pool = self.engine.pool
        stats = PoolStats(
            max_open_connections=self.capacity,
            wait_count=self._wait_count,
            wait_duration=format_duration(self._wait_seconds),
        )
        if isinstance(pool, QueuePool):
            idle = pool.checkedin()
            in_use = pool.checkedout()
            stats.open_connections = idle + in_use
            stats.idle = idle
            stats.in_use = in_use
            stats.overflow = max(pool.overflow(), 0)
        return stats
