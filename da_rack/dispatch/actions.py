"""Dispatch layer — the closed action catalog."""

from __future__ import annotations

from enum import Enum


class Action(str, Enum):
    INIT_SYSTEM = "init_system"
    EXEC = "exec"
    CREATE_TABLE = "create_table"
    LIST_TABLES = "list_tables"
    BATCH_POST = "batch_post"
    DROP_TABLE = "drop_table"
    CREATE_INDEX = "create_index"
    LIST_INDICES = "list_indices"
    DROP_INDEX = "drop_index"
    POST = "post"
    PUT = "put"
    UPDATE_C1 = "update_c1"
    GET = "get"
    DELETE = "delete"

    @classmethod
    def names(cls) -> list[str]:
        return [a.value for a in cls]
