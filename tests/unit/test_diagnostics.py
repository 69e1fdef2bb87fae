"""Unit tests — DiagnosticReporter and sinks."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from da_rack.diagnostics import (
    TOPIC_DIAGNOSTICS,
    DiagnosticReporter,
    DiagnosticSink,
    LogFileSink,
    NullSink,
)


class _ExplodingSink(DiagnosticSink):
    async def emit(self, event: dict[str, Any]) -> None:
        raise OSError("disk full")


@pytest.mark.unit
class TestDiagnosticReporter:
    @pytest.mark.asyncio
    async def test_report_delivers_to_sink(self, reporter: DiagnosticReporter, sink) -> None:
        reporter.report("DELETE ALL from users", table="users")
        await reporter.drain()
        [event] = sink.events
        assert event["message"] == "DELETE ALL from users"
        assert event["table"] == "users"
        assert event["_topic"] == TOPIC_DIAGNOSTICS
        assert "_timestamp" in event

    @pytest.mark.asyncio
    async def test_report_does_not_block(self, reporter: DiagnosticReporter, sink) -> None:
        reporter.report("one")
        reporter.report("two")
        assert reporter.pending == 2
        assert sink.events == []
        await reporter.drain()
        assert reporter.pending == 0
        assert sink.messages == ["one", "two"]

    @pytest.mark.asyncio
    async def test_sink_failure_is_swallowed(self) -> None:
        reporter = DiagnosticReporter(_ExplodingSink())
        reporter.report("boom")
        await reporter.drain()
        assert reporter.pending == 0

    def test_report_without_loop_is_log_only(self) -> None:
        reporter = DiagnosticReporter(NullSink())
        reporter.report("outside any loop")
        assert reporter.pending == 0

    @pytest.mark.asyncio
    async def test_drain_with_nothing_pending(self) -> None:
        await DiagnosticReporter().drain()


@pytest.mark.unit
class TestLogFileSink:
    @pytest.mark.asyncio
    async def test_appends_ndjson(self, tmp_path: Path) -> None:
        path = tmp_path / "diag" / "events.ndjson"
        sink = LogFileSink(path)
        await sink.emit({"message": "first"})
        await sink.emit({"message": "second", "table": "t"})

        lines = path.read_text(encoding="utf-8").splitlines()
        assert [json.loads(line)["message"] for line in lines] == ["first", "second"]
        assert json.loads(lines[1])["table"] == "t"
