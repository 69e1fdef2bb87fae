"""Query layer — identifier validation, value normalisation and SQL building."""

from da_rack.query.builder import GetOptions, Statement
from da_rack.query.identifiers import (
    ALLOWED_COLUMNS,
    FORBIDDEN_TABLES,
    resolve_table_name,
)
from da_rack.query.normalize import normalize_text_columns

__all__ = [
    "ALLOWED_COLUMNS",
    "FORBIDDEN_TABLES",
    "GetOptions",
    "Statement",
    "normalize_text_columns",
    "resolve_table_name",
]
