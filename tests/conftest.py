"""Shared pytest fixtures for the da-rack test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio

from da_rack.config import Settings, override_settings
from da_rack.diagnostics import DiagnosticReporter, DiagnosticSink
from da_rack.dispatch.dispatcher import ActionDispatcher
from da_rack.storage.store import SqlStore

TEST_TOKEN = "test-secret-token"


class RecordingSink(DiagnosticSink):
    """Keeps every emitted event in memory."""

    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []

    async def emit(self, event: dict[str, Any]) -> None:
        self.events.append(self._stamp(event))

    @property
    def messages(self) -> list[str]:
        return [e["message"] for e in self.events]


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    settings = Settings(
        security={"write_token": TEST_TOKEN},
        service={"instance_id": "test"},
        storage={"database": str(tmp_path / "da.db")},
        logging={"level": "warning", "format": "console"},
    )
    override_settings(settings)
    return settings


# ---------------------------------------------------------------------------
# Storage / dispatch
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def store(tmp_path: Path) -> AsyncGenerator[SqlStore, None]:
    s = SqlStore(tmp_path / "test.db")
    await s.init()
    yield s
    await s.close()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def reporter(sink: RecordingSink) -> DiagnosticReporter:
    return DiagnosticReporter(sink)


@pytest.fixture
def dispatcher(store: SqlStore, reporter: DiagnosticReporter) -> ActionDispatcher:
    return ActionDispatcher(store, reporter)
