"""Query layer — identifier validation.

Identifiers cannot be bound as parameters, so they are interpolated into SQL
text.  That is only done after they pass the checks below:

  - column names must be in ``ALLOWED_COLUMNS``
  - table names must be non-blank and must not name a catalog table

Table names are deny-listed rather than allow-listed so callers can create
and address tables of their own choosing.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from da_rack.exceptions import InvalidColumnsError, InvalidTableNameError

TABLE_NAME_KEY = "table_name"

ALLOWED_COLUMNS: tuple[str, ...] = (
    "id",
    "c1", "c2", "c3",
    "i1", "i2", "i3",
    "d1", "d2", "d3",
    "t1", "t2", "t3",
    "v1", "v2", "v3",
)

# Keys of a ``get`` payload that are not equality filters.
QUERY_OPTIONS: frozenset[str] = frozenset(
    {"minId", "offset", "order", "orderby", "limit", TABLE_NAME_KEY}
)

FORBIDDEN_TABLES: frozenset[str] = frozenset(
    {"sqlite_master", "sqlite_schema", "sqlite_temp_master", "sqlite_sequence"}
)

_ALLOWED = frozenset(ALLOWED_COLUMNS)


def resolve_table_name(payload: dict[str, Any]) -> str:
    """Return the trimmed table name from *payload*.

    Raises:
        InvalidTableNameError: if the name is missing, blank, not a string, or
            one of the catalog tables (exact, case-sensitive match).
    """
    raw = payload.get(TABLE_NAME_KEY)
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidTableNameError(raw)
    name = raw.strip()
    if name in FORBIDDEN_TABLES:
        raise InvalidTableNameError(raw)
    return name


def is_allowed_column(name: Any) -> bool:
    return isinstance(name, str) and name in _ALLOWED


def invalid_columns(keys: Iterable[str]) -> list[str]:
    """Return the keys outside the allow-list, in input order."""
    return [k for k in keys if k not in _ALLOWED]


def require_columns(keys: Iterable[str]) -> list[str]:
    """Return *keys* as a list, or raise if any of them is not a column."""
    keys = list(keys)
    bad = invalid_columns(keys)
    if bad:
        raise InvalidColumnsError(bad)
    return keys


def index_name(table: str, column: str) -> str:
    return f"idx_{table}_{column}"
