"""
Whitepaper endpoints.

Routes
------
POST   /api/whitepaper/generate               generate, store and return a whitepaper
GET    /api/whitepapers                       caller's history, newest first
GET    /api/whitepapers/{id}                  one entry with its generated text
GET    /api/whitepapers/{id}/download         the rendered document as a file
DELETE /api/whitepapers/{id}                  remove an entry
"""
import base64
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import get_authorized_whitepaper, get_optional_user_id, owned_by
from app.dependencies.services import get_whitepaper_generator
from app.errors import ServiceError, WhitepaperGenerationError, describe_generation_error
from app.models.database_models import Whitepaper
from app.models.schemas import (
    WhitepaperDetail,
    WhitepaperGenerateRequest,
    WhitepaperGenerateResponse,
    WhitepaperSummary,
)
from app.services.whitepaper_generator import WhitepaperGenerator

logger = logging.getLogger(__name__)

router = APIRouter()
history_router = APIRouter()


# ═══════════════════════════════════════════════════════════════════════════════
# GENERATION
# ═══════════════════════════════════════════════════════════════════════════════

@router.post(
    "/generate",
    response_model=WhitepaperGenerateResponse,
    response_model_exclude_unset=True,
)
async def generate_whitepaper(
    body: WhitepaperGenerateRequest,
    user_id: Optional[str] = Depends(get_optional_user_id),
    generator: WhitepaperGenerator = Depends(get_whitepaper_generator),
    db: AsyncSession = Depends(get_db),
):
    """
    Generate a whitepaper and return the rendered document base64-encoded.

    ``content`` (the plain text) is left out of the response for ``ppt``.
    """
    if not body.prompt or not body.prompt.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Prompt is required",
        )

    try:
        result = await generator.generate(
            body.prompt.strip(),
            output_format=body.output_format,
            num_pages=body.num_pages,
            writing_style=body.writing_style,
            frameworks=body.frameworks,
            image_frequency=body.image_frequency,
        )
    except WhitepaperGenerationError:
        raise
    except Exception as e:
        logger.exception("Whitepaper generation error: %s", e)
        described = describe_generation_error(e)
        return JSONResponse(
            status_code=e.status_code if isinstance(e, ServiceError) else 500,
            content={
                "error": "Failed to generate whitepaper",
                "message": described["message"],
                "details": described["details"],
                "hint": "Check server logs for detailed error information",
            },
        )

    document = result.document
    whitepaper = Whitepaper(
        user_id=user_id,
        prompt=body.prompt.strip(),
        output_format=result.output_format,
        writing_style=result.writing_style,
        frameworks=result.frameworks,
        image_frequency=result.image_frequency,
        num_pages=result.num_pages,
        images_generated=result.images_generated,
        word_count=result.word_count,
        pages_rendered=document.pages,
        filename=document.filename,
        mime_type=document.mime_type,
        content=result.content,
        document=document.content,
    )
    db.add(whitepaper)
    await db.flush()
    logger.info(
        "Stored whitepaper id=%d (%s) for user=%s", whitepaper.id, document.filename, user_id
    )

    fields = dict(
        success=True,
        id=whitepaper.id,
        document=base64.b64encode(document.content).decode("ascii"),
        filename=document.filename,
        mime_type=document.mime_type,
        num_pages=result.num_pages,
        writing_style=result.writing_style,
        frameworks=result.frameworks,
        image_frequency=result.image_frequency,
        images_generated=result.images_generated,
        word_count=result.word_count,
        pages_rendered=document.pages,
    )
    if result.output_format != "ppt":
        fields["content"] = result.content
    return WhitepaperGenerateResponse(**fields)


# ═══════════════════════════════════════════════════════════════════════════════
# HISTORY
# ═══════════════════════════════════════════════════════════════════════════════

@history_router.get("", response_model=List[WhitepaperSummary])
async def list_whitepapers(
    user_id: Optional[str] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[WhitepaperSummary]:
    """List the caller's whitepapers, newest first, without document payloads."""
    result = await db.execute(
        select(Whitepaper)
        .where(owned_by(user_id))
        .order_by(Whitepaper.created_at.desc(), Whitepaper.id.desc())
    )
    return [WhitepaperSummary.model_validate(w) for w in result.scalars().all()]


@history_router.get("/{whitepaper_id}", response_model=WhitepaperDetail)
async def get_whitepaper(
    whitepaper: Whitepaper = Depends(get_authorized_whitepaper),
) -> WhitepaperDetail:
    return WhitepaperDetail.model_validate(whitepaper)


@history_router.get("/{whitepaper_id}/download")
async def download_whitepaper(
    whitepaper: Whitepaper = Depends(get_authorized_whitepaper),
) -> Response:
    """Return the stored document bytes as an attachment."""
    return Response(
        content=whitepaper.document,
        media_type=whitepaper.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{whitepaper.filename}"'},
    )


@history_router.delete(
    "/{whitepaper_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_model=None,
)
async def delete_whitepaper(
    whitepaper: Whitepaper = Depends(get_authorized_whitepaper),
    db: AsyncSession = Depends(get_db),
) -> None:
    await db.delete(whitepaper)
    await db.flush()
    logger.info("Deleted whitepaper id=%d (%s)", whitepaper.id, whitepaper.filename)
