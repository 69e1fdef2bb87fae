"""API layer — FastAPI dependency injection.

The store, dispatcher and codec are created once at startup and injected
via FastAPI's dependency system.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from da_rack.api.envelope import EnvelopeCodec
from da_rack.config import Settings


def get_codec(request: Request) -> EnvelopeCodec:
    return request.app.state.codec  # type: ignore[no-any-return]


def get_config(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[no-any-return]


# Shorthand type aliases for route signatures.
CodecDep = Annotated[EnvelopeCodec, Depends(get_codec)]
ConfigDep = Annotated[Settings, Depends(get_config)]
