"""Unit tests — SqlStore (aiosqlite, temp file)."""

from __future__ import annotations

from pathlib import Path

import pytest

from da_rack.exceptions import StorageError
from da_rack.query import builder
from da_rack.query.builder import Statement
from da_rack.storage.store import SqlStore


async def _count(store: SqlStore, table: str = "notes") -> int:
    result = await store.all(Statement(f"SELECT COUNT(*) AS n FROM {table}"))
    return result.rows[0]["n"]


@pytest.mark.unit
class TestLifecycle:
    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, tmp_path: Path) -> None:
        store = SqlStore(tmp_path / "nested" / "dir" / "da.db")
        await store.init()
        assert (tmp_path / "nested" / "dir").is_dir()
        await store.close()

    @pytest.mark.asyncio
    async def test_memory_database(self) -> None:
        store = SqlStore(":memory:")
        await store.init()
        result = await store.all(Statement("SELECT 1 AS one"))
        assert result.rows == [{"one": 1}]
        await store.close()

    @pytest.mark.asyncio
    async def test_use_before_init_raises(self, tmp_path: Path) -> None:
        store = SqlStore(tmp_path / "da.db")
        with pytest.raises(StorageError, match="not initialised"):
            await store.run(Statement("SELECT 1"))


@pytest.mark.unit
class TestExecution:
    @pytest.mark.asyncio
    async def test_run_reports_changes_and_last_row_id(self, store: SqlStore) -> None:
        await store.batch(builder.create_table("notes"))
        result = await store.run(builder.insert("notes", {"c1": "a"}))
        assert result.changes == 1
        assert result.last_row_id == 1

    @pytest.mark.asyncio
    async def test_all_returns_dict_rows(self, store: SqlStore) -> None:
        await store.batch(builder.create_table("notes"))
        await store.run(builder.insert("notes", {"c1": "a", "i1": 5}))
        result = await store.all(Statement("SELECT c1, i1 FROM notes"))
        assert result.rows == [{"c1": "a", "i1": 5}]
        assert result.meta()["rows_returned"] == 1

    @pytest.mark.asyncio
    async def test_select_reports_zero_changes(self, store: SqlStore) -> None:
        result = await store.all(Statement("SELECT 1"))
        assert result.changes == 0

    @pytest.mark.asyncio
    async def test_sqlite_error_wrapped(self, store: SqlStore) -> None:
        with pytest.raises(StorageError, match="no such table"):
            await store.run(Statement("SELECT * FROM missing"))

    @pytest.mark.asyncio
    async def test_integer_overflow_wrapped(self, store: SqlStore) -> None:
        with pytest.raises(StorageError):
            await store.run(Statement("SELECT ?", (10**20,)))

    @pytest.mark.asyncio
    async def test_blob_values_hex_encoded(self, store: SqlStore) -> None:
        result = await store.all(Statement("SELECT x'ff00' AS b, 1 AS n"))
        assert result.rows == [{"b": "ff00", "n": 1}]

    @pytest.mark.asyncio
    async def test_unique_violation_flagged(self, store: SqlStore) -> None:
        await store.batch(builder.create_table("notes", c1_unique=True))
        await store.run(builder.insert("notes", {"c1": "a"}))
        with pytest.raises(StorageError) as exc_info:
            await store.run(builder.insert("notes", {"c1": "a"}))
        assert exc_info.value.is_unique_violation


@pytest.mark.unit
class TestBatch:
    @pytest.mark.asyncio
    async def test_all_statements_apply(self, store: SqlStore) -> None:
        await store.batch(builder.create_table("notes"))
        results = await store.batch(builder.batch_insert("notes", [{"c1": "a"}, {"c1": "b"}]))
        assert len(results) == 2
        assert await _count(store) == 2

    @pytest.mark.asyncio
    async def test_failure_rolls_back_everything(self, store: SqlStore) -> None:
        await store.batch(builder.create_table("notes", c1_unique=True))
        with pytest.raises(StorageError):
            await store.batch(builder.batch_insert("notes", [{"c1": "a"}, {"c1": "b"}, {"c1": "a"}]))
        assert await _count(store) == 0

    @pytest.mark.asyncio
    async def test_store_usable_after_rollback(self, store: SqlStore) -> None:
        await store.batch(builder.create_table("notes", c1_unique=True))
        with pytest.raises(StorageError):
            await store.batch([builder.insert("notes", {"c1": "x"}), Statement("BROKEN SQL")])
        await store.run(builder.insert("notes", {"c1": "x"}))
        assert await _count(store) == 1

    @pytest.mark.asyncio
    async def test_bind_overflow_rolls_back_and_store_recovers(self, store: SqlStore) -> None:
        await store.batch(builder.create_table("notes"))
        with pytest.raises(StorageError):
            await store.batch(builder.batch_insert("notes", [{"c2": "a"}, {"i1": 10**20}]))

        await store.batch(builder.batch_insert("notes", [{"c2": "b"}]))
        await store.run(builder.insert("notes", {"c2": "later"}))
        await store.close()

        reopened = SqlStore(store.database)
        await reopened.init()
        rows = (await reopened.all(Statement("SELECT c2 FROM notes ORDER BY id"))).rows
        await reopened.close()
        assert rows == [{"c2": "b"}, {"c2": "later"}]
