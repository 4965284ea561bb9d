"""
Pydantic schemas for request/response validation.

The frontend speaks camelCase, so whitepaper schemas use camelCase aliases
and also accept the snake_case field names.
"""
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional, List, Literal
from datetime import datetime


OutputFormat = Literal["pdf", "docx", "ppt", "txt"]


class CamelModel(BaseModel):
    """Base for schemas exchanged with the frontend in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Whitepaper Schemas
class WhitepaperGenerateRequest(CamelModel):
    """Body of POST /api/whitepaper/generate."""

    prompt: Optional[str] = None  # checked by the route so a blank prompt gives 400
    output_format: OutputFormat = "pdf"
    num_pages: int = Field(10, ge=1)
    image_frequency: Optional[str] = Field(None, max_length=100)
    writing_style: str = Field("professional", max_length=50)
    frameworks: List[str] = Field(default_factory=list)


class WhitepaperGenerateResponse(CamelModel):
    """Generated document (base64) plus generation statistics."""

    success: bool = True
    id: int
    document: str
    filename: str
    mime_type: str
    content: Optional[str] = None  # left unset for ppt
    num_pages: int
    writing_style: str
    frameworks: List[str]
    image_frequency: Optional[str] = None
    images_generated: int
    word_count: int
    pages_rendered: int


class WhitepaperSummary(CamelModel):
    """History entry without the document payload."""

    id: int
    prompt: str
    output_format: str
    writing_style: str
    frameworks: List[str] = Field(default_factory=list)
    image_frequency: Optional[str] = None
    num_pages: int
    images_generated: int
    word_count: int
    pages_rendered: int
    filename: str
    mime_type: str
    created_at: datetime

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class WhitepaperDetail(WhitepaperSummary):
    """History entry with the generated text."""

    content: str


# Media Schemas
class MediaRequest(BaseModel):
    """Body of POST /api/media/generate."""

    prompt: Optional[str] = None
    type: Literal["image", "video"] = "image"


class MediaResponse(BaseModel):
    """Generated image URL (data URL or hosted) or video scene description."""

    success: bool = True
    model: Literal["google", "openai"]
    type: Literal["image", "video"]
    url: Optional[str] = None
    content: Optional[str] = None
    note: Optional[str] = None


# Framework Schemas
class FrameworkResponse(BaseModel):
    """Catalog entry."""

    id: str
    name: str
    description: str

    model_config = ConfigDict(from_attributes=True)


class FrameworkDiscoverRequest(BaseModel):
    """Body of POST /api/frameworks/discover."""

    mode: Literal["keywords", "ai"] = "keywords"


class DiscoveredFrameworkResponse(BaseModel):
    """A framework found in the knowledge base."""

    id: str
    name: str
    description: str
    mentions: int = 1

    model_config = ConfigDict(from_attributes=True)


class FrameworkDiscoverResponse(BaseModel):
    mode: str
    count: int
    frameworks: List[DiscoveredFrameworkResponse]


# Health Check Schema
class HealthCheckResponse(BaseModel):
    """Schema for health check endpoint."""

    status: str
    database: str
    openai: str
    pinecone: str
    google: str
    timestamp: datetime
    version: str = "0.1.0"
