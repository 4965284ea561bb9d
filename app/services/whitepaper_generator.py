"""
Whitepaper pipeline: knowledge context, generation, post-processing,
illustrations and export.

Public API
----------
WhitepaperGenerator.generate(prompt, output_format=..., num_pages=..., ...) -> WhitepaperResult
build_knowledge_context(matches, limit)                                     -> str
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence

from app.config import settings
from app.errors import ServiceError, WhitepaperGenerationError
from app.services.content_formatter import inspect_formatting, normalize_generated_content
from app.services.document_exporter import RenderedDocument, export_document
from app.services.document_layout import PlacedImage
from app.services.frameworks import get_framework
from app.services.image_generator import GeminiImageService
from app.services.image_planner import build_image_prompt, parse_image_frequency, plan_image_pages
from app.services.llm_client import OpenAIService
from app.services.prompt_builder import (
    DEFAULT_WRITING_STYLE,
    TokenBudget,
    WordBudget,
    build_continuation_prompt,
    build_system_prompt,
    build_user_message,
)
from app.services.vector_search import PineconeService, VectorMatch
from app.utils.helpers import preview, round_half_up, word_count

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class KnowledgeContext:
    """Grounding material pulled from the vector store."""

    general: str = ""
    frameworks: Dict[str, str] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass
class WhitepaperResult:
    """Returned by WhitepaperGenerator.generate."""

    content: str
    document: RenderedDocument
    output_format: str
    num_pages: int
    writing_style: str
    frameworks: List[str]
    image_frequency: Optional[str]
    images_generated: int
    word_count: int


def build_knowledge_context(matches: Sequence[VectorMatch], limit: int) -> str:
    """
    Dedupe *matches* by id (the last occurrence wins), rank by score and
    format the best *limit* as ``[title]: text`` lines.
    """
    unique = OrderedDict()
    for match in matches:
        unique.pop(match.id, None)
        unique[match.id] = match
    ranked = sorted(unique.values(), key=lambda m: m.score, reverse=True)[:limit]
    return "\n\n".join(
        f"[{m.title or 'Document'}]: {m.text or m.id}" for m in ranked
    )


class WhitepaperGenerator:
    """
    Runs the whole whitepaper pipeline for one request.

    The three clients are injectable so tests (and the router's dependency
    overrides) can swap in fakes.
    """

    def __init__(
        self,
        llm: Optional[OpenAIService] = None,
        vector_store: Optional[PineconeService] = None,
        images: Optional[GeminiImageService] = None,
    ) -> None:
        self.llm = llm or OpenAIService()
        self.vector_store = vector_store or PineconeService()
        self.images = images or GeminiImageService()

    async def generate(
        self,
        prompt: str,
        output_format: str = "pdf",
        num_pages: int = 10,
        writing_style: str = DEFAULT_WRITING_STYLE,
        frameworks: Optional[List[str]] = None,
        image_frequency: Optional[str] = None,
    ) -> WhitepaperResult:
        frameworks = list(frameworks or [])
        num_pages = max(1, min(num_pages, settings.MAX_PAGES))
        logger.info(
            "Whitepaper request: format=%s pages=%d style=%s frameworks=%s images=%r prompt=%r",
            output_format,
            num_pages,
            writing_style,
            frameworks,
            image_frequency,
            preview(prompt),
        )

        knowledge = await self.gather_context(prompt, frameworks)

        content = await self.write_content(prompt, num_pages, writing_style, frameworks, knowledge)
        content = normalize_generated_content(content)
        report = inspect_formatting(content)
        for warning in report.warnings():
            logger.warning("Formatting: %s", warning)

        placed = await self.generate_images(prompt, frameworks, num_pages, image_frequency)

        document = export_document(output_format, content, placed, num_pages)
        logger.info(
            "Whitepaper ready: %s (%d bytes, %d pages, %d/%d images placed)",
            document.filename,
            len(document.content),
            document.pages,
            document.images_placed,
            len(placed),
        )

        return WhitepaperResult(
            content=content,
            document=document,
            output_format=output_format,
            num_pages=num_pages,
            writing_style=writing_style,
            frameworks=frameworks,
            image_frequency=image_frequency,
            images_generated=len(placed),
            word_count=word_count(content),
        )

    # ------------------------------------------------------------------
    # Stage 1: knowledge context
    # ------------------------------------------------------------------

    async def gather_context(self, prompt: str, frameworks: List[str]) -> KnowledgeContext:
        knowledge = KnowledgeContext()
        if not self.vector_store.is_configured:
            logger.warning("Knowledge base not configured; generating without grounding context")
            return knowledge

        # Embedding the prompt itself is required; LLMServiceError propagates.
        embedding = await self.llm.get_embedding(prompt)

        pool: List[VectorMatch] = []
        try:
            pool.extend(await self.vector_store.query(embedding, settings.PINECONE_TOP_K))
        except ServiceError as exc:
            logger.warning("Knowledge base query failed for main prompt: %s", exc)

        for framework_id in frameworks:
            framework = get_framework(framework_id)
            if framework is None:
                logger.warning("Unknown framework %r ignored for context", framework_id)
                continue
            try:
                framework_embedding = await self.llm.get_embedding(framework.query)
                matches = await self.vector_store.query(
                    framework_embedding, settings.PINECONE_TOP_K
                )
            except ServiceError as exc:
                logger.warning("Knowledge base query failed for framework %s: %s", framework_id, exc)
                continue

            texts = [m.text for m in matches[: settings.FRAMEWORK_CONTEXT_LIMIT] if m.text]
            if texts:
                knowledge.frameworks[framework_id] = "\n\n".join(texts)
                logger.info("Framework %s: %d context passages", framework_id, len(texts))
            pool.extend(matches)

        knowledge.general = build_knowledge_context(pool, settings.CONTEXT_MATCH_LIMIT)
        logger.info(
            "Knowledge context: %d matches pooled, %d chars, %d framework sections",
            len(pool),
            len(knowledge.general),
            len(knowledge.frameworks),
        )
        return knowledge

    # ------------------------------------------------------------------
    # Stage 2: generation with continuation rounds
    # ------------------------------------------------------------------

    async def write_content(
        self,
        prompt: str,
        num_pages: int,
        writing_style: str,
        frameworks: List[str],
        knowledge: KnowledgeContext,
    ) -> str:
        word_budget = WordBudget.for_request(num_pages, len(frameworks))
        token_budget = TokenBudget.for_pages(num_pages)
        logger.info(
            "Budget: target=%d min=%d required=%d words, max_tokens=%d%s",
            word_budget.target_words,
            word_budget.min_words,
            word_budget.min_words_required,
            token_budget.max_tokens,
            " (continuations expected)" if token_budget.needs_chunking else "",
        )

        system_prompt = build_system_prompt(num_pages, writing_style, frameworks, word_budget)
        user_message = build_user_message(
            prompt,
            num_pages,
            writing_style,
            context=knowledge.general,
            framework_contexts=knowledge.frameworks,
            budget=word_budget,
        )
        base_messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ]

        try:
            content = await self.llm.chat_completion(
                base_messages,
                temperature=settings.GENERATION_TEMPERATURE,
                preserve_system_message=True,
                max_tokens=token_budget.max_tokens,
            )
        except ServiceError as exc:
            logger.error("Initial generation failed: %s", exc)
            raise WhitepaperGenerationError(
                "Failed to generate whitepaper content",
                details=exc.message,
                hint="Check server logs for more details",
            ) from exc

        if not content or not content.strip():
            logger.error("Whitepaper content is empty after generation")
            raise WhitepaperGenerationError(
                "Failed to generate whitepaper content. The AI response was empty.",
                hint=(
                    "This might be due to API rate limits, invalid API key, or the model "
                    "not generating content. Check server logs for details."
                ),
            )

        current_words = word_count(content)
        logger.info("Initial generation: %d words", current_words)

        rounds = 0
        while (
            current_words < word_budget.min_words_required
            and rounds < settings.MAX_CONTINUATION_ROUNDS
        ):
            rounds += 1
            logger.warning(
                "Round %d: %d words, need %d. Requesting continuation",
                rounds,
                current_words,
                word_budget.min_words_required,
            )
            messages = base_messages + [
                {"role": "assistant", "content": content},
                {
                    "role": "user",
                    "content": build_continuation_prompt(
                        current_words, word_budget.min_words_required, num_pages
                    ),
                },
            ]
            try:
                continuation = await self.llm.chat_completion(
                    messages,
                    temperature=settings.GENERATION_TEMPERATURE,
                    preserve_system_message=True,
                    max_tokens=token_budget.continuation_tokens(current_words),
                )
            except ServiceError as exc:
                logger.error("Continuation round %d failed: %s", rounds, exc)
                break

            if not continuation or not continuation.strip():
                logger.warning("Continuation round %d returned empty content", rounds)
                break

            content = f"{content}\n\n{continuation}"
            current_words = word_count(content)
            logger.info("After round %d: %d words", rounds, current_words)

        if current_words < word_budget.min_words_required:
            logger.warning(
                "Generated %d words after %d continuation rounds (required %d); "
                "expect about %d pages instead of %d",
                current_words,
                rounds,
                word_budget.min_words_required,
                round_half_up(current_words / settings.WORDS_PER_PAGE),
                num_pages,
            )
        return content

    # ------------------------------------------------------------------
    # Stage 3: illustrations
    # ------------------------------------------------------------------

    async def generate_images(
        self,
        prompt: str,
        frameworks: List[str],
        num_pages: int,
        image_frequency: Optional[str],
    ) -> List[PlacedImage]:
        frequency = parse_image_frequency(image_frequency)
        if frequency is None or not frequency.is_active:
            if image_frequency:
                logger.warning("Image frequency %r not understood; no images", image_frequency)
            return []

        pages = plan_image_pages(num_pages, frequency)
        logger.info(
            "Planning %d images (%d per %d pages) on pages %s",
            len(pages),
            frequency.images_per_group,
            frequency.pages_per_group,
            ", ".join(str(p + 1) for p in pages) or "none",
        )

        placed: List[PlacedImage] = []
        for n, page_index in enumerate(pages, start=1):
            image_prompt = build_image_prompt(prompt, frameworks, page_index, num_pages)
            logger.info("Generating image %d/%d for page %d", n, len(pages), page_index + 1)
            try:
                generated = await self.images.generate_image(image_prompt)
            except Exception as exc:
                logger.error("Image %d for page %d failed: %s", n, page_index + 1, exc)
                generated = None

            if generated and len(generated.base64) > settings.MIN_IMAGE_BASE64_LENGTH:
                image = PlacedImage.from_base64(page_index, generated.base64, generated.mime_type)
                if image is not None:
                    placed.append(image)
            else:
                logger.error(
                    "Image %d for page %d returned no usable data (length %d)",
                    n,
                    page_index + 1,
                    len(generated.base64) if generated else 0,
                )

            await asyncio.sleep(settings.IMAGE_REQUEST_DELAY)

        if pages and not placed:
            logger.error("No images were generated; check GOOGLE_AI_API_KEY and the image model")
        else:
            logger.info("Generated %d/%d images", len(placed), len(pages))
        return placed
