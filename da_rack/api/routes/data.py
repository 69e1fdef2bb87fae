"""POST /api — the single action endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from da_rack.api.dependencies import CodecDep

router = APIRouter(tags=["data"])


@router.post("/api", summary="Run one catalog action")
async def run_action(request: Request, codec: CodecDep) -> JSONResponse:
    return await codec.handle(request)
