"""Dispatch layer — ActionDispatcher.

Turns ``(action, payload)`` into an :class:`Outcome`.  Per request:

    validate table → look up handler → build → execute → shape result

Nothing escapes :meth:`ActionDispatcher.dispatch`: rejected input, missing
rows and storage failures all come back as ``Outcome(error=...)``.  Rejected
table names and unexpected failures are additionally reported to the
diagnostic channel.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from da_rack.diagnostics import DiagnosticReporter
from da_rack.dispatch.actions import Action
from da_rack.dispatch.params import parse_params
from da_rack.exceptions import (
    DataAccessError,
    DuplicateKeyError,
    InvalidTableNameError,
    RecordNotFoundError,
    StorageError,
    UnknownActionError,
)
from da_rack.logging import get_logger
from da_rack.query import builder
from da_rack.query.builder import GetOptions
from da_rack.query.identifiers import resolve_table_name
from da_rack.storage.store import SqlStore

log = get_logger(__name__)

Handler = Callable[[str, dict[str, Any]], Awaitable["dict[str, Any] | None"]]


class _ExecFailed(DataAccessError):
    """A raw ``exec`` statement failed; reported to the caller only."""


@dataclass
class Outcome:
    """Result of one dispatched action: either a payload or an error message."""

    payload: dict[str, Any] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, message: str) -> "Outcome":
        return cls(error=message)


class ActionDispatcher:
    """Routes catalog actions to their handlers against one :class:`SqlStore`."""

    def __init__(self, store: SqlStore, reporter: DiagnosticReporter | None = None) -> None:
        self._store = store
        self._reporter = reporter or DiagnosticReporter()
        self._handlers: dict[Action, Handler] = {
            Action.INIT_SYSTEM: self._init_system,
            Action.EXEC: self._exec,
            Action.CREATE_TABLE: self._create_table,
            Action.LIST_TABLES: self._list_tables,
            Action.BATCH_POST: self._batch_post,
            Action.DROP_TABLE: self._drop_table,
            Action.CREATE_INDEX: self._create_index,
            Action.LIST_INDICES: self._list_indices,
            Action.DROP_INDEX: self._drop_index,
            Action.POST: self._post,
            Action.PUT: self._put,
            Action.UPDATE_C1: self._update_c1,
            Action.GET: self._get,
            Action.DELETE: self._delete,
        }

    async def dispatch(self, action: str, payload: dict[str, Any]) -> Outcome:
        try:
            table = resolve_table_name(payload)
        except InvalidTableNameError as exc:
            self._reporter.report(exc.message, action=action)
            return Outcome.failure(exc.message)

        try:
            handler = self._handlers[self._lookup(action)]
            result = await handler(table, payload)
        except StorageError as exc:
            self._reporter.report(f"DB operation failed: {exc.message}", action=action, table=table)
            return Outcome.failure(exc.message)
        except DataAccessError as exc:
            log.info("action_rejected", action=action, table=table, error=exc.message)
            return Outcome.failure(exc.message)
        except Exception as exc:
            self._reporter.report(f"DB operation failed: {exc}", action=action, table=table)
            return Outcome.failure(str(exc))

        log.debug("action_dispatched", action=action, table=table)
        return Outcome(payload=result)

    @staticmethod
    def _lookup(action: str) -> Action:
        try:
            return Action(action)
        except ValueError:
            raise UnknownActionError(action) from None

    # ------------------------------------------------------------------
    # Schema actions
    # ------------------------------------------------------------------

    async def _init_system(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        await self._store.batch(builder.init_system(str(uuid.uuid4())))
        return {"success": True, "message": "System table and reserved records initialized."}

    async def _create_table(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        p = parse_params(Action.CREATE_TABLE, payload)
        await self._store.batch(builder.create_table(table, p.c1_unique))
        return {"message": f"Table {table} ready."}

    async def _drop_table(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        await self._store.run(builder.drop_table(table))
        return {"message": f"Table {table} has been deleted."}

    async def _list_tables(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        result = await self._store.all(builder.list_tables())
        tables = [row["name"] for row in result.rows]
        return {"count": len(tables), "tables": tables}

    async def _create_index(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        p = parse_params(Action.CREATE_INDEX, payload)
        await self._store.run(builder.create_index(table, p.column, p.unique))
        return {"message": f"Index {builder.index_name(table, p.column)} created."}

    async def _list_indices(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        result = await self._store.all(builder.list_indices(table))
        return {"indices": result.rows}

    async def _drop_index(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        p = parse_params(Action.DROP_INDEX, payload)
        await self._store.run(builder.drop_index(table, p.column))
        return {"message": f"Index {builder.index_name(table, p.column)} dropped."}

    # ------------------------------------------------------------------
    # Raw SQL
    # ------------------------------------------------------------------

    async def _exec(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        p = parse_params(Action.EXEC, payload)
        statement = builder.raw(p.query, p.params)
        try:
            result = await self._store.all(statement)
        except StorageError as exc:
            raise _ExecFailed(f"SQL Execution Error: {exc.message}") from exc
        return {"success": True, "results": result.rows, "meta": result.meta()}

    # ------------------------------------------------------------------
    # Row actions
    # ------------------------------------------------------------------

    async def _batch_post(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        p = parse_params(Action.BATCH_POST, payload)
        results = await self._store.batch(builder.batch_insert(table, p.data))
        return {"inserted": len(results)}

    async def _post(self, table: str, payload: dict[str, Any]) -> None:
        await self._store.run(builder.insert(table, payload))
        return None

    async def _put(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        result = await self._store.run(builder.update(table, payload))
        if result.changes == 0:
            raise RecordNotFoundError("Record not found or no rows updated")
        return {"updated": result.changes}

    async def _update_c1(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        p = parse_params(Action.UPDATE_C1, payload)
        statement = builder.rename_c1(table, p.id, p.new_c1)
        try:
            result = await self._store.run(statement)
        except StorageError as exc:
            if exc.is_unique_violation:
                raise DuplicateKeyError("c1 already exists", context={"c1": p.new_c1}) from exc
            raise
        if result.changes == 0:
            raise RecordNotFoundError("Record not found")
        return {"renamed": True}

    async def _get(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        options = GetOptions.parse(payload)
        result = await self._store.all(builder.select(table, options))
        return {"rows": result.rows}

    async def _delete(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        statement = builder.delete(table, payload)
        if not builder.column_keys(payload):
            self._reporter.report(f"DELETE ALL from {table}", action=Action.DELETE.value, table=table)
            log.warning("delete_all_requested", table=table)
        result = await self._store.run(statement)
        return {"deleted": result.changes or 0}
