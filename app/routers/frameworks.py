"""
Analysis framework endpoints.

GET  /api/frameworks           the built-in catalog
POST /api/frameworks/discover  find frameworks mentioned in the knowledge base
"""
import logging
from typing import List

from fastapi import APIRouter, Depends

from app.dependencies.services import get_discovery_service
from app.models.schemas import (
    DiscoveredFrameworkResponse,
    FrameworkDiscoverRequest,
    FrameworkDiscoverResponse,
    FrameworkResponse,
)
from app.services.frameworks import FRAMEWORKS, FrameworkDiscoveryService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[FrameworkResponse])
async def list_frameworks() -> List[FrameworkResponse]:
    return [FrameworkResponse.model_validate(f) for f in FRAMEWORKS]


@router.post("/discover", response_model=FrameworkDiscoverResponse)
async def discover_frameworks(
    body: FrameworkDiscoverRequest,
    service: FrameworkDiscoveryService = Depends(get_discovery_service),
) -> FrameworkDiscoverResponse:
    """
    Search the knowledge base for analysis frameworks.

    ``keywords`` matches a regex table against passages retrieved for seed
    keywords; ``ai`` asks the LLM to list frameworks found in retrieved
    passages.  An unconfigured knowledge base gives 400.
    """
    found = await service.discover(body.mode)
    logger.info("Framework discovery (%s): %d found", body.mode, len(found))
    return FrameworkDiscoverResponse(
        mode=body.mode,
        count=len(found),
        frameworks=[DiscoveredFrameworkResponse.model_validate(f) for f in found],
    )
