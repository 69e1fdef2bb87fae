"""DA Rack — Exception hierarchy.

All exceptions raised by the service inherit from DataAccessError so that the
dispatcher can turn the full family into an error outcome with one clause.

Hierarchy:
    DataAccessError
    ├── RequestRejectedError
    │   ├── InvalidTableNameError
    │   ├── InvalidColumnsError
    │   ├── InvalidPayloadError
    │   ├── QueryOptionError
    │   └── ForbiddenQueryError
    ├── RecordNotFoundError
    ├── DuplicateKeyError
    ├── UnknownActionError
    └── StorageError
"""

from __future__ import annotations

from typing import Any


class DataAccessError(Exception):
    """Base exception for all DA Rack errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Malformed input
# ---------------------------------------------------------------------------


class RequestRejectedError(DataAccessError):
    """Base for errors caused by the caller's payload, raised before any SQL runs."""


class InvalidTableNameError(RequestRejectedError):
    """The payload has no usable ``table_name`` or names a catalog table."""

    def __init__(self, table_name: Any = None) -> None:
        super().__init__(
            "Invalid or missing table_name",
            context={"table_name": table_name},
        )
        self.table_name = table_name


class InvalidColumnsError(RequestRejectedError):
    """One or more keys are outside the column allow-list."""

    def __init__(self, columns: list[str]) -> None:
        super().__init__(
            f"Invalid columns: {', '.join(columns)}",
            context={"columns": columns},
        )
        self.columns = columns


class InvalidPayloadError(RequestRejectedError):
    """A required payload field is missing or has the wrong shape."""


class QueryOptionError(RequestRejectedError):
    """Query options are invalid or conflict with each other."""


class ForbiddenQueryError(RequestRejectedError):
    """A raw query references the storage engine's internal catalog."""


# ---------------------------------------------------------------------------
# Outcome errors
# ---------------------------------------------------------------------------


class RecordNotFoundError(DataAccessError):
    """An update targeted zero rows."""


class DuplicateKeyError(DataAccessError):
    """A write collided with a uniqueness constraint."""


class UnknownActionError(DataAccessError):
    """The action name is not part of the catalog."""

    def __init__(self, action: str) -> None:
        super().__init__(f"Unknown action: {action}", context={"action": action})
        self.action = action


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


class StorageError(DataAccessError):
    """The underlying store failed to execute a statement."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message, context={"cause": type(cause).__name__ if cause else None})
        self.cause = cause

    @property
    def is_unique_violation(self) -> bool:
        return "UNIQUE" in self.message
