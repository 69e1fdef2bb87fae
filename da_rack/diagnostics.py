"""Diagnostics — best-effort side channel for notable events.

Filterless deletes, rejected table names and failed storage operations are
reported here.  Reporting never blocks or fails the request that triggered
it: the event is logged immediately, then handed to a sink on a detached
task whose errors are logged and dropped.

Sinks:
  - NullSink     → default (log only)
  - LogFileSink  → NDJSON append-only file
"""

from __future__ import annotations

import asyncio
import json
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from da_rack.logging import get_logger

log = get_logger(__name__)

TOPIC_DIAGNOSTICS = "da.diagnostics"


class DiagnosticSink(ABC):
    """Destination for diagnostic events.

    An event is a plain dict.  ``_stamp`` adds ``_topic`` and ``_timestamp``
    before the event is written.
    """

    @abstractmethod
    async def emit(self, event: dict[str, Any]) -> None:
        """Publish *event*."""

    def _stamp(self, event: dict[str, Any]) -> dict[str, Any]:
        event.setdefault("_topic", TOPIC_DIAGNOSTICS)
        event.setdefault("_timestamp", time.time())
        return event


class NullSink(DiagnosticSink):
    """Discards all events."""

    async def emit(self, event: dict[str, Any]) -> None:
        pass


class LogFileSink(DiagnosticSink):
    """Writes events as NDJSON to a file — one line per event, append-only."""

    def __init__(self, log_file: Path) -> None:
        self._file = log_file.expanduser()
        self._lock = asyncio.Lock()

    async def emit(self, event: dict[str, Any]) -> None:
        self._stamp(event)
        line = json.dumps(event, default=str) + "\n"
        async with self._lock:
            self._file.parent.mkdir(parents=True, exist_ok=True)
            with self._file.open("a", encoding="utf-8") as f:
                f.write(line)


class DiagnosticReporter:
    """Fire-and-forget submission of diagnostic events.

    Usage::

        reporter = DiagnosticReporter(LogFileSink(Path("~/.da-rack/diag.ndjson")))
        reporter.report("DELETE ALL from users", table="users")
        ...
        await reporter.drain()   # at shutdown
    """

    def __init__(self, sink: DiagnosticSink | None = None) -> None:
        self._sink = sink or NullSink()
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def report(self, message: str, **context: Any) -> None:
        log.error("diagnostic_reported", message=message, **context)
        event = {"message": message, **context}
        try:
            task = asyncio.get_running_loop().create_task(self._deliver(event))
        except RuntimeError:
            # No running loop; the log line above is all we can do.
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every in-flight delivery to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _deliver(self, event: dict[str, Any]) -> None:
        try:
            await self._sink.emit(event)
        except Exception as exc:
            log.warning("diagnostic_delivery_failed", error=str(exc))
