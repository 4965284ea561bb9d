"""
Standalone media generation.

POST /api/media/generate  image (Gemini, DALL-E fallback) or video scene description (Gemini)
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.dependencies.services import get_image_service, get_llm_service
from app.errors import ServiceError
from app.models.schemas import MediaRequest, MediaResponse
from app.services.image_generator import GeminiImageService
from app.services.llm_client import OpenAIService
from app.utils.helpers import preview

logger = logging.getLogger(__name__)

router = APIRouter()

VIDEO_NOTE = (
    "Google Gemini generated video description/script. "
    "Full video generation may require additional services."
)


@router.post("/generate", response_model=MediaResponse, response_model_exclude_none=True)
async def generate_media(
    body: MediaRequest,
    images: GeminiImageService = Depends(get_image_service),
    llm: OpenAIService = Depends(get_llm_service),
) -> MediaResponse:
    """
    Generate an image or a video description for *prompt*.

    Images come from Gemini as a ``data:`` URL; when Gemini is not configured
    or returns nothing, OpenAI DALL-E is tried and its hosted URL returned.
    """
    if not body.prompt or not body.prompt.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Prompt is required",
        )
    prompt = body.prompt.strip()
    logger.info("Media request: type=%s prompt=%r", body.type, preview(prompt))

    if images.is_configured:
        if body.type == "image":
            image = await images.generate_image(prompt)
            if image is not None:
                return MediaResponse(model="google", type="image", url=image.data_url)
            logger.warning("Gemini returned no image; trying OpenAI")
        else:
            description = await images.describe_video(prompt)
            if description:
                return MediaResponse(
                    model="google", type="video", content=description, note=VIDEO_NOTE
                )

    if body.type == "image" and llm.is_configured:
        try:
            url = await llm.generate_image_url(prompt)
        except ServiceError as e:
            logger.error("DALL-E generation failed: %s", e)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to generate media: {e.message}",
            )
        if url:
            return MediaResponse(model="openai", type="image", url=url)

    if body.type == "video":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                "Video generation is currently only available via Google Gemini. "
                "Please ensure GOOGLE_AI_API_KEY is set."
            ),
        )

    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="No API keys available. Please set GOOGLE_AI_API_KEY or OPENAI_API_KEY.",
    )
