"""API layer — Envelope schemas.

These are the external API contracts for ``POST /api`` and ``GET /meta``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

UNKNOWN_REQUEST_ID = "unknown"


class NackCode(str, Enum):
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_JSON = "INVALID_JSON"
    INVALID_FIELD = "INVALID_FIELD"
    REQUEST_FAILED = "REQUEST_FAILED"


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class RequestEnvelope(BaseModel):
    """POST /api — one action against one table."""

    action: str = Field(default="", description="Catalog action name, e.g. 'get'.")
    payload: Any = Field(default=None, description="Action payload; must name table_name.")
    request_id: str = Field(
        default=UNKNOWN_REQUEST_ID,
        description="Caller-chosen id echoed back verbatim.",
    )

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> "RequestEnvelope":
        request_id = body.get("request_id")
        action = body.get("action")
        return cls(
            action=str(action) if action else "",
            payload=body.get("payload"),
            request_id=str(request_id) if request_id else UNKNOWN_REQUEST_ID,
        )


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ErrorPayload(BaseModel):
    status: Literal["error"] = "error"
    code: NackCode
    message: str


class AckEnvelope(BaseModel):
    type: Literal["ack"] = "ack"
    request_id: str
    source_id: str
    payload: dict[str, Any] = Field(default_factory=dict)


class NackEnvelope(BaseModel):
    type: Literal["nack"] = "nack"
    request_id: str
    source_id: str
    payload: ErrorPayload


class ServiceMetadata(BaseModel):
    """GET /meta — static service identity."""

    service: str
    version: str
    instance: str
