"""GET /meta — static service metadata."""

from __future__ import annotations

from fastapi import APIRouter

from da_rack import __service__, __version__
from da_rack.api.dependencies import ConfigDep
from da_rack.api.schemas import ServiceMetadata

router = APIRouter(tags=["meta"])


@router.get("/meta", response_model=ServiceMetadata, summary="Service identity")
async def meta(config: ConfigDep) -> ServiceMetadata:
    return ServiceMetadata(
        service=__service__,
        version=__version__,
        instance=config.service.instance_id,
    )
