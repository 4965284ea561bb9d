"""
Service providers for FastAPI routes.

Routes never build API clients themselves; tests replace these providers
through ``app.dependency_overrides``.
"""
from __future__ import annotations

from fastapi import Depends

from app.services.frameworks import FrameworkDiscoveryService
from app.services.image_generator import GeminiImageService
from app.services.llm_client import OpenAIService
from app.services.vector_search import PineconeService
from app.services.whitepaper_generator import WhitepaperGenerator


def get_llm_service() -> OpenAIService:
    return OpenAIService()


def get_vector_store() -> PineconeService:
    return PineconeService()


def get_image_service() -> GeminiImageService:
    return GeminiImageService()


def get_whitepaper_generator(
    llm: OpenAIService = Depends(get_llm_service),
    vector_store: PineconeService = Depends(get_vector_store),
    images: GeminiImageService = Depends(get_image_service),
) -> WhitepaperGenerator:
    return WhitepaperGenerator(llm=llm, vector_store=vector_store, images=images)


def get_discovery_service(
    llm: OpenAIService = Depends(get_llm_service),
    vector_store: PineconeService = Depends(get_vector_store),
) -> FrameworkDiscoveryService:
    return FrameworkDiscoveryService(llm=llm, vector_store=vector_store)
