"""
DOCX renderer.

Word reflows text itself, so pages are only *estimated* here, from the
running word count at ``WORDS_PER_PAGE`` words per page, to decide where
each illustration goes.
"""
from __future__ import annotations

import io
import logging
import math
from typing import Dict, Iterable, List, Optional

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Pt, RGBColor

from app.config import settings
from app.services.content_formatter import Block, parse_blocks
from app.services.document_layout import (
    PlacedImage,
    RenderOutput,
    fit_within,
    images_by_page,
    log_unplaced,
)
from app.utils.helpers import word_count

logger = logging.getLogger(__name__)

HEADING_SIZES: Dict[int, int] = {1: 18, 2: 16, 3: 14}
BODY_SIZE = 12
IMAGE_MAX_WIDTH_IN = 6.0
IMAGE_MAX_HEIGHT_IN = 4.4  # ~40% of a Letter page


def _add_heading(doc, block: Block) -> None:
    paragraph = doc.add_heading(level=block.level)
    run = paragraph.add_run(block.text)
    run.bold = True
    run.font.size = Pt(HEADING_SIZES[block.level])
    paragraph.paragraph_format.space_after = Pt(10 if block.level == 1 else 5)


def _add_body(doc, block: Block) -> None:
    paragraph = doc.add_paragraph()
    run = paragraph.add_run(block.text)
    run.font.size = Pt(BODY_SIZE)
    paragraph.paragraph_format.space_after = Pt(5)


def _add_image(doc, image: PlacedImage) -> bool:
    """Insert *image* centred; fall back to an italic placeholder line.  True if embedded."""
    paragraph = doc.add_paragraph()
    paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
    paragraph.paragraph_format.space_before = Pt(10)
    paragraph.paragraph_format.space_after = Pt(10)

    size = image.pixel_size()
    if size is not None:
        width, height = fit_within(
            IMAGE_MAX_WIDTH_IN,
            IMAGE_MAX_WIDTH_IN * size[1] / max(size[0], 1),
            IMAGE_MAX_WIDTH_IN,
            IMAGE_MAX_HEIGHT_IN,
        )
        try:
            paragraph.add_run().add_picture(
                io.BytesIO(image.data), width=Inches(width), height=Inches(height)
            )
            logger.info("[DOCX] ✓ Embedded image for page %d", image.page_index + 1)
            return True
        except Exception as exc:
            logger.warning("[DOCX] Failed to embed image for page %d: %s", image.page_index + 1, exc)

    run = paragraph.add_run(f"[Image {image.page_index + 1}: Visual representation]")
    run.italic = True
    run.font.size = Pt(10)
    run.font.color.rgb = RGBColor(0x66, 0x66, 0x66)
    return False


def render_docx(content: str, images: Iterable[PlacedImage] = ()) -> RenderOutput:
    """Build a Word document from blank-line separated paragraphs."""
    blocks: List[Block] = parse_blocks(content, regroup_short=False)
    pending = sorted(images_by_page(images).values(), key=lambda img: img.page_index)
    targets = [img.page_index for img in pending]

    doc = Document()
    normal = doc.styles["Normal"]
    normal.font.name = "Calibri"
    normal.font.size = Pt(BODY_SIZE)

    title: Optional[str] = next((b.text for b in blocks if b.is_heading), None)
    if title:
        doc.core_properties.title = title

    words_so_far = 0
    placed: List[int] = []
    for block in blocks:
        estimated_page = words_so_far // settings.WORDS_PER_PAGE
        while pending and pending[0].page_index <= estimated_page:
            image = pending.pop(0)
            if _add_image(doc, image):
                placed.append(image.page_index)

        if block.is_heading:
            _add_heading(doc, block)
        else:
            _add_body(doc, block)
        words_so_far += word_count(block.text)

    estimated_pages = max(1, math.ceil(words_so_far / settings.WORDS_PER_PAGE))
    log_unplaced("DOCX", targets, placed, estimated_pages)
    logger.info(
        "[DOCX] Complete: %d blocks, ~%d pages, %d images embedded",
        len(blocks),
        estimated_pages,
        len(placed),
    )

    buffer = io.BytesIO()
    doc.save(buffer)
    return RenderOutput(content=buffer.getvalue(), pages=estimated_pages, images_placed=len(placed))
