"""Storage layer — aiosqlite-backed statement execution."""

from da_rack.storage.store import ExecResult, SqlStore

__all__ = ["ExecResult", "SqlStore"]
