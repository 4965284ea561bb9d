"""Database and schema models for the whitepaper service."""
from app.models.database_models import Whitepaper
from app.models.schemas import (
    WhitepaperGenerateRequest,
    WhitepaperGenerateResponse,
    WhitepaperSummary,
    WhitepaperDetail,
    MediaRequest,
    MediaResponse,
    FrameworkResponse,
    FrameworkDiscoverRequest,
    FrameworkDiscoverResponse,
    HealthCheckResponse,
)

__all__ = [
    # Database models
    "Whitepaper",
    # Pydantic schemas
    "WhitepaperGenerateRequest",
    "WhitepaperGenerateResponse",
    "WhitepaperSummary",
    "WhitepaperDetail",
    "MediaRequest",
    "MediaResponse",
    "FrameworkResponse",
    "FrameworkDiscoverRequest",
    "FrameworkDiscoverResponse",
    "HealthCheckResponse",
]
