"""
Caller identity for FastAPI routes.

The frontend sends the signed-in user's id in the X-User-Id header.  Requests
without it run in demo mode and only see whitepapers that have no owner.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.database_models import Whitepaper

logger = logging.getLogger(__name__)


async def get_optional_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id", max_length=255),
) -> Optional[str]:
    """Extract user ID if present, return None for demo mode."""
    return x_user_id or None


def owned_by(user_id: Optional[str]):
    """WHERE clause matching whitepapers visible to *user_id*."""
    if user_id is None:
        return Whitepaper.user_id.is_(None)
    return Whitepaper.user_id == user_id


async def get_authorized_whitepaper(
    whitepaper_id: int,
    user_id: Optional[str] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
) -> Whitepaper:
    """
    Load a whitepaper the caller may see.
    Returns the Whitepaper ORM object or raises 404.
    """
    result = await db.execute(
        select(Whitepaper).where(
            Whitepaper.id == whitepaper_id,
            owned_by(user_id),
        )
    )
    whitepaper = result.scalar_one_or_none()

    if whitepaper is None:
        logger.info("Whitepaper %d not visible to user=%s", whitepaper_id, user_id)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Whitepaper {whitepaper_id} not found.",
        )

    return whitepaper
