"""Query layer — parameterised SQL for the action catalog.

Every builder returns one or more :class:`Statement` objects.  Values always
travel in ``Statement.params`` behind ``?`` placeholders; the only text that
is interpolated is identifiers that already passed
:mod:`da_rack.query.identifiers`.

Every table shares one schema::

    id INTEGER PRIMARY KEY AUTOINCREMENT
    c1..c3 VARCHAR(255)   i1..i3 INT   d1..d3 DOUBLE   t1..t3 TEXT
    v1 created   v2 modified   v3 reserved   (TIMESTAMP, default now)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from da_rack.exceptions import (
    ForbiddenQueryError,
    InvalidColumnsError,
    InvalidPayloadError,
    QueryOptionError,
)
from da_rack.query.identifiers import (
    QUERY_OPTIONS,
    TABLE_NAME_KEY,
    index_name,
    invalid_columns,
    is_allowed_column,
    require_columns,
)
from da_rack.query.normalize import normalize_text_columns

DEFAULT_LIMIT = 100
MAX_LIMIT = 500

SYSTEM_TABLE = "__DA_SYSTEM_CONFIG"
SCHEMA_VERSION = 1

# Lower-case substrings that mark the engine's own catalog tables.
CATALOG_MARKERS: tuple[str, ...] = ("sqlite_", "_cf_")


@dataclass(frozen=True)
class Statement:
    """SQL text plus its positional bind values."""

    sql: str
    params: tuple[Any, ...] = ()


def column_keys(payload: dict[str, Any], exclude: tuple[str, ...] = ()) -> list[str]:
    """Return the payload keys that address columns (``table_name`` dropped)."""
    skip = {TABLE_NAME_KEY, *exclude}
    return [k for k in payload if k not in skip]


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------


def create_table(table: str, c1_unique: bool = False) -> list[Statement]:
    c1_constraint = " UNIQUE" if c1_unique else ""
    statements = [
        Statement(
            f"CREATE TABLE IF NOT EXISTS {table} ("
            "id INTEGER PRIMARY KEY AUTOINCREMENT, "
            f"c1 VARCHAR(255){c1_constraint}, "
            "c2 VARCHAR(255), c3 VARCHAR(255), "
            "i1 INT, i2 INT, i3 INT, "
            "d1 DOUBLE, d2 DOUBLE, d3 DOUBLE, "
            "t1 TEXT, t2 TEXT, t3 TEXT, "
            "v1 TIMESTAMP DEFAULT CURRENT_TIMESTAMP, "
            "v2 TIMESTAMP DEFAULT CURRENT_TIMESTAMP, "
            "v3 TIMESTAMP DEFAULT CURRENT_TIMESTAMP)"
        )
    ]
    if not c1_unique:
        statements.append(
            Statement(f"CREATE INDEX IF NOT EXISTS {index_name(table, 'c1')} ON {table}(c1)")
        )
    statements.append(
        Statement(f"CREATE INDEX IF NOT EXISTS {index_name(table, 'v2')} ON {table}(v2)")
    )
    return statements


def drop_table(table: str) -> Statement:
    return Statement(f"DROP TABLE IF EXISTS {table}")


def list_tables() -> Statement:
    return Statement(
        "SELECT name FROM sqlite_master "
        "WHERE type='table' AND name NOT LIKE 'sqlite_%' AND name NOT LIKE '_cf_%'"
    )


def create_index(table: str, column: Any, unique: bool = False) -> Statement:
    if not is_allowed_column(column):
        raise InvalidPayloadError(f"Invalid column: {column}", context={"column": column})
    unique_str = "UNIQUE " if unique else ""
    return Statement(
        f"CREATE {unique_str}INDEX IF NOT EXISTS {index_name(table, column)} ON {table} ({column})"
    )


def drop_index(table: str, column: Any) -> Statement:
    if not column:
        raise InvalidPayloadError("Missing column")
    if not is_allowed_column(column):
        raise InvalidPayloadError(f"Invalid column: {column}", context={"column": column})
    return Statement(f"DROP INDEX IF EXISTS {index_name(table, column)}")


def list_indices(table: str) -> Statement:
    return Statement(f"PRAGMA index_list({table})")


def init_system(version_token: str) -> list[Statement]:
    """Create the system table and seed its two reserved rows (insert-if-absent)."""
    return [
        *create_table(SYSTEM_TABLE, c1_unique=True),
        Statement(
            f"INSERT OR IGNORE INTO {SYSTEM_TABLE} (id, c1, c2, i1, d1) "
            "VALUES (1, '___basic_db_version', ?, ?, ?)",
            (version_token, SCHEMA_VERSION, SCHEMA_VERSION),
        ),
        Statement(
            f"INSERT OR IGNORE INTO {SYSTEM_TABLE} (id, c1) VALUES (100, '___systemReserve')"
        ),
    ]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def insert(table: str, record: dict[str, Any]) -> Statement:
    """Build a single-row insert from *record* (``table_name`` ignored)."""
    record = normalize_text_columns(record)
    keys = require_columns(column_keys(record))
    if not keys:
        return Statement(f"INSERT INTO {table} DEFAULT VALUES")
    placeholders = ",".join("?" for _ in keys)
    return Statement(
        f"INSERT INTO {table} ({','.join(keys)}) VALUES ({placeholders})",
        tuple(record[k] for k in keys),
    )


def batch_insert(table: str, records: list[dict[str, Any]]) -> list[Statement]:
    """Build one insert per record, validating every record before returning.

    Raises:
        InvalidColumnsError: naming every bad key across all records.
    """
    bad: list[str] = []
    for record in records:
        for key in invalid_columns(column_keys(record)):
            if key not in bad:
                bad.append(key)
    if bad:
        raise InvalidColumnsError(bad)
    return [insert(table, record) for record in records]


def update(table: str, payload: dict[str, Any]) -> Statement:
    """Update one row located by ``id`` (preferred) or ``c1``.

    With no other columns given, only ``v2`` is refreshed.
    """
    has_id = payload.get("id") is not None
    has_c1 = payload.get("c1") is not None
    if not has_id and not has_c1:
        raise InvalidPayloadError("Missing 'id' or 'c1' for update")

    payload = normalize_text_columns(payload)
    keys = require_columns(column_keys(payload, exclude=("id", "c1")))

    where_clause = "id = ?" if has_id else "c1 = ?"
    where_value = payload["id"] if has_id else payload["c1"]

    if not keys:
        return Statement(
            f"UPDATE {table} SET v2 = CURRENT_TIMESTAMP WHERE {where_clause}",
            (where_value,),
        )
    set_clause = ", ".join(f"{k} = ?" for k in keys)
    return Statement(
        f"UPDATE {table} SET {set_clause}, v2 = CURRENT_TIMESTAMP WHERE {where_clause}",
        (*(payload[k] for k in keys), where_value),
    )


def rename_c1(table: str, row_id: Any, new_c1: Any) -> Statement:
    if not row_id or not new_c1:
        raise InvalidPayloadError("Missing id or new_c1")
    return Statement(
        f"UPDATE {table} SET c1 = ?, v2 = CURRENT_TIMESTAMP WHERE id = ?",
        (new_c1, row_id),
    )


def delete(table: str, payload: dict[str, Any]) -> Statement:
    """Delete rows matching the AND of equality filters; no filters deletes all."""
    keys = require_columns(column_keys(payload))
    if not keys:
        return Statement(f"DELETE FROM {table}")
    where = " AND ".join(f"{k} = ?" for k in keys)
    return Statement(f"DELETE FROM {table} WHERE {where}", tuple(payload[k] for k in keys))


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GetOptions:
    """Parsed ``get`` options."""

    filters: dict[str, Any]
    order: Literal["ASC", "DESC"] = "ASC"
    order_by: str = "id"
    limit: int = DEFAULT_LIMIT
    bound: Any = None

    @classmethod
    def parse(cls, payload: dict[str, Any]) -> "GetOptions":
        filter_keys = [k for k in payload if k not in QUERY_OPTIONS]
        bad = invalid_columns(filter_keys)
        if bad:
            raise InvalidColumnsError(bad)

        min_id = payload.get("minId")
        offset = payload.get("offset")
        if min_id is not None and offset is not None:
            raise QueryOptionError("Cannot use both minId and offset")

        order_by = payload.get("orderby")
        if order_by is None:
            order_by = "id"
        elif not is_allowed_column(order_by):
            raise QueryOptionError(f"Invalid column: {order_by}", context={"orderby": order_by})

        return cls(
            filters={k: payload[k] for k in filter_keys},
            order="DESC" if payload.get("order") == "desc" else "ASC",
            order_by=order_by,
            limit=page_limit(payload.get("limit")),
            bound=offset if offset is not None else min_id,
        )


def page_limit(value: Any) -> int:
    """Positive integers are capped at MAX_LIMIT; anything else means DEFAULT_LIMIT."""
    if isinstance(value, bool):
        return DEFAULT_LIMIT
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and value > 0:
        return min(value, MAX_LIMIT)
    return DEFAULT_LIMIT


def select(table: str, options: GetOptions) -> Statement:
    conditions = [f"{k} = ?" for k in options.filters]
    params: list[Any] = list(options.filters.values())

    if options.bound is not None:
        op = ">" if options.order == "ASC" else "<"
        conditions.append(f"{options.order_by} {op} ?")
        params.append(options.bound)

    sql = f"SELECT * FROM {table}"
    if conditions:
        sql += " WHERE " + " AND ".join(conditions)
    sql += f" ORDER BY {options.order_by} {options.order} LIMIT ?"
    params.append(options.limit)
    return Statement(sql, tuple(params))


# ---------------------------------------------------------------------------
# Raw SQL
# ---------------------------------------------------------------------------


def raw(query: Any, params: Any = None) -> Statement:
    """Wrap caller-supplied SQL, refusing anything that touches the catalog."""
    if not query or not isinstance(query, str):
        raise InvalidPayloadError("Missing SQL query")
    lowered = query.lower().strip()
    if any(marker in lowered for marker in CATALOG_MARKERS):
        raise ForbiddenQueryError("Access to system tables via EXEC is forbidden.")
    bound = tuple(params) if isinstance(params, list) else ()
    return Statement(query, bound)
