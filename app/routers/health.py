"""
Health check endpoint.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime, timezone

from app.database import get_db, ping
from app.dependencies.services import get_image_service, get_llm_service, get_vector_store
from app.models.schemas import HealthCheckResponse
from app.services.image_generator import GeminiImageService
from app.services.llm_client import OpenAIService
from app.services.vector_search import PineconeService

router = APIRouter()


def _configured(flag: bool) -> str:
    return "configured" if flag else "not_configured"


@router.get("/", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    llm: OpenAIService = Depends(get_llm_service),
    vector_store: PineconeService = Depends(get_vector_store),
    images: GeminiImageService = Depends(get_image_service),
):
    """
    Health check endpoint to verify system status.

    Returns:
        HealthCheckResponse with database status and which API keys are set.
        ``healthy`` needs a working database and an OpenAI key.
    """
    db_status = "ok" if await ping(db) else "error"

    overall_status = "healthy" if db_status == "ok" and llm.is_configured else "degraded"

    return HealthCheckResponse(
        status=overall_status,
        database=db_status,
        openai=_configured(llm.is_configured),
        pinecone=_configured(vector_store.is_configured),
        google=_configured(images.is_configured),
        timestamp=datetime.now(timezone.utc),
    )
