"""API layer — Envelope codec.

Sits between the HTTP route and the dispatcher:

    authenticate → decode JSON → require payload → dispatch → ack | nack

Every reply is an envelope carrying the caller's ``request_id`` and this
process's ``source_id``.  Acks answer 200; nacks answer 400 with
``{status: "error", code, message}``.
"""

from __future__ import annotations

import hmac
import json
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from da_rack.api.schemas import (
    UNKNOWN_REQUEST_ID,
    AckEnvelope,
    ErrorPayload,
    NackCode,
    NackEnvelope,
    RequestEnvelope,
)
from da_rack.dispatch.dispatcher import ActionDispatcher
from da_rack.logging import bind_request_context, clear_request_context, get_logger

log = get_logger(__name__)

_BEARER_PREFIX = "Bearer "


def ack(request_id: str, source_id: str, payload: dict[str, Any] | None = None) -> JSONResponse:
    body = AckEnvelope(request_id=request_id, source_id=source_id, payload=payload or {})
    return JSONResponse(status_code=200, content=body.model_dump(mode="json"))


def nack(request_id: str, source_id: str, code: NackCode, message: str) -> JSONResponse:
    body = NackEnvelope(
        request_id=request_id,
        source_id=source_id,
        payload=ErrorPayload(code=code, message=message),
    )
    return JSONResponse(status_code=400, content=body.model_dump(mode="json"))


class EnvelopeCodec:
    """Decodes request envelopes, runs the dispatcher and encodes the reply."""

    def __init__(
        self,
        dispatcher: ActionDispatcher,
        source_id: str,
        write_token: str | None,
    ) -> None:
        self._dispatcher = dispatcher
        self._source_id = source_id
        self._write_token = write_token

    @property
    def source_id(self) -> str:
        return self._source_id

    def authenticate(self, authorization: str | None) -> tuple[NackCode, str] | None:
        """Return ``(code, message)`` when the header fails, else ``None``."""
        if not authorization or not authorization.startswith(_BEARER_PREFIX):
            return NackCode.UNAUTHORIZED, "Missing Authorization"
        token = authorization[len(_BEARER_PREFIX):].strip()
        if self._write_token is None or not hmac.compare_digest(
            token.encode(), self._write_token.encode()
        ):
            return NackCode.INVALID_TOKEN, "Token failed"
        return None

    async def handle(self, request: Request) -> JSONResponse:
        failure = self.authenticate(request.headers.get("Authorization"))
        if failure is not None:
            log.warning("auth_rejected", code=failure[0].value)
            return nack(UNKNOWN_REQUEST_ID, self._source_id, *failure)

        try:
            body = json.loads(await request.body())
        except (json.JSONDecodeError, UnicodeDecodeError):
            return nack(UNKNOWN_REQUEST_ID, self._source_id, NackCode.INVALID_JSON, "Malformed JSON")
        if not isinstance(body, dict):
            return nack(UNKNOWN_REQUEST_ID, self._source_id, NackCode.INVALID_JSON, "Malformed JSON")

        envelope = RequestEnvelope.from_body(body)
        if envelope.payload is None:
            return nack(
                envelope.request_id, self._source_id, NackCode.INVALID_FIELD, "Missing payload"
            )
        if not isinstance(envelope.payload, dict):
            return nack(
                envelope.request_id,
                self._source_id,
                NackCode.INVALID_FIELD,
                "Field 'payload' must be an object",
            )

        bind_request_context(request_id=envelope.request_id, action=envelope.action)
        try:
            outcome = await self._dispatcher.dispatch(envelope.action, envelope.payload)
        finally:
            clear_request_context()

        if not outcome.ok:
            return nack(
                envelope.request_id,
                self._source_id,
                NackCode.REQUEST_FAILED,
                outcome.error or "Request failed",
            )
        try:
            return ack(envelope.request_id, self._source_id, outcome.payload)
        except ValueError as exc:
            # Values JSON cannot carry, such as infinite REAL results.
            log.error("ack_encoding_failed", error=str(exc))
            return nack(
                envelope.request_id,
                self._source_id,
                NackCode.REQUEST_FAILED,
                f"Result could not be encoded: {exc}",
            )
