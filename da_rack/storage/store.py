"""Storage layer — SQLite store backed by aiosqlite.

Executes :class:`~da_rack.query.builder.Statement` objects built by the query
layer.  Offers three primitives:

  - ``run``   — execute one statement, report changes
  - ``all``   — execute one statement, fetch every row
  - ``batch`` — execute several statements inside one transaction; either
                all of them apply or none do

The connection runs in autocommit mode; ``batch`` opens its own explicit
transaction.  Every ``sqlite3.Error`` is re-raised as ``StorageError``.
"""

from __future__ import annotations

import asyncio
import sqlite3
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import aiosqlite

from da_rack.exceptions import StorageError
from da_rack.logging import get_logger
from da_rack.query.builder import Statement

log = get_logger(__name__)


@dataclass
class ExecResult:
    rows: list[dict[str, Any]] = field(default_factory=list)
    changes: int = 0
    last_row_id: int | None = None
    duration_ms: float = 0.0

    def meta(self) -> dict[str, Any]:
        return {
            "changes": self.changes,
            "last_row_id": self.last_row_id,
            "duration_ms": self.duration_ms,
            "rows_returned": len(self.rows),
        }


def _plain_row(row: aiosqlite.Row) -> dict[str, Any]:
    """Convert *row* to a dict, hex-encoding BLOB values so the row stays JSON-safe."""
    return {
        key: value.hex() if isinstance(value, (bytes, memoryview)) else value
        for key, value in zip(row.keys(), row)
    }


class SqlStore:
    """Async SQLite store.

    Usage::

        store = SqlStore("~/.da-rack/da.db")
        await store.init()
        result = await store.all(Statement("SELECT * FROM t WHERE id = ?", (1,)))
        await store.close()
    """

    def __init__(self, database: str | Path, timeout: float = 5.0) -> None:
        database = str(database)
        if database != ":memory:":
            database = str(Path(database).expanduser())
        self._database = database
        self._timeout = timeout
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    @property
    def database(self) -> str:
        return self._database

    async def init(self) -> None:
        if self._database != ":memory:":
            Path(self._database).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = await aiosqlite.connect(
                self._database, timeout=self._timeout, isolation_level=None
            )
            self._conn.row_factory = aiosqlite.Row
            if self._database != ":memory:":
                await self._conn.execute("PRAGMA journal_mode=WAL")
        except sqlite3.Error as exc:
            raise StorageError(f"Store init failed: {exc}", cause=exc) from exc
        log.info("store_opened", database=self._database)

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    # ------------------------------------------------------------------
    # Execution primitives
    # ------------------------------------------------------------------

    async def run(self, statement: Statement) -> ExecResult:
        """Execute *statement* without fetching rows."""
        async with self._lock:
            return await self._execute(statement, fetch=False)

    async def all(self, statement: Statement) -> ExecResult:
        """Execute *statement* and fetch every resulting row."""
        async with self._lock:
            return await self._execute(statement, fetch=True)

    async def batch(self, statements: list[Statement]) -> list[ExecResult]:
        """Execute *statements* atomically, in order.

        Any failure, including cancellation, rolls the transaction back before
        the lock is released.
        """
        conn = self._require_conn()
        results: list[ExecResult] = []
        async with self._lock:
            try:
                await conn.execute("BEGIN")
            except sqlite3.Error as exc:
                raise StorageError(str(exc), cause=exc) from exc
            try:
                for statement in statements:
                    results.append(await self._execute(statement, fetch=False))
                await conn.execute("COMMIT")
            except BaseException as exc:
                if conn.in_transaction:
                    await conn.execute("ROLLBACK")
                log.warning("batch_rolled_back", statements=len(statements), error=str(exc))
                if isinstance(exc, StorageError) or not isinstance(exc, Exception):
                    raise
                raise StorageError(str(exc), cause=exc) from exc
        return results

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StorageError("Store is not initialised; call init() first")
        return self._conn

    async def _execute(self, statement: Statement, fetch: bool) -> ExecResult:
        conn = self._require_conn()
        start = time.perf_counter()
        try:
            async with conn.execute(statement.sql, statement.params) as cursor:
                rows = await cursor.fetchall() if fetch else []
                changes = max(cursor.rowcount, 0)
                last_row_id = cursor.lastrowid
        except (sqlite3.Error, OverflowError, ValueError) as exc:
            # OverflowError: an integer outside SQLite's 64-bit range was bound.
            raise StorageError(str(exc), cause=exc) from exc
        return ExecResult(
            rows=[_plain_row(row) for row in rows],
            changes=changes,
            last_row_id=last_row_id,
            duration_ms=round((time.perf_counter() - start) * 1000, 3),
        )
