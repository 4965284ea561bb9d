"""
PPTX renderer.

Slides are the "pages" of a deck:

* slide 0 is a title slide carrying the first heading;
* every heading opens a new slide and becomes its title;
* body paragraphs are collected into the slide's body text frame, and a
  ``(cont.)`` slide is opened when the body grows past ``MAX_BODY_CHARS``;
* nothing is laid out past ``num_slides`` slides;
* the illustration for page *p* goes on slide *p + 1* (the title slide is
  not counted as a content page).
"""
from __future__ import annotations

import dataclasses
import io
import logging
from typing import Iterable, List, Optional

from pptx import Presentation
from pptx.enum.text import PP_ALIGN
from pptx.util import Inches, Pt

from app.services.content_formatter import Block, parse_blocks
from app.services.document_layout import (
    PlacedImage,
    RenderOutput,
    fit_within,
    images_by_page,
    log_unplaced,
)

logger = logging.getLogger(__name__)

SLIDE_WIDTH_IN = 13.333
SLIDE_HEIGHT_IN = 7.5
SIDE_MARGIN_IN = 0.5
BODY_TOP_IN = 1.5
BODY_HEIGHT_IN = 5.5
FULL_WIDTH_IN = SLIDE_WIDTH_IN - 2 * SIDE_MARGIN_IN
TEXT_WITH_IMAGE_WIDTH_IN = 6.2
IMAGE_LEFT_IN = 7.0
IMAGE_MAX_WIDTH_IN = SLIDE_WIDTH_IN - IMAGE_LEFT_IN - SIDE_MARGIN_IN

MAX_PARAGRAPH_CHARS = 500
MAX_BODY_CHARS = 900

TITLE_SLIDE_SIZE = 44
HEADING_SIZES = {1: 18, 2: 16, 3: 16}
BODY_SIZE = 12
BLANK_LAYOUT = 6


@dataclasses.dataclass
class _ContentSlide:
    slide: object
    title: Optional[str]
    level: int
    body_width_in: float
    body_frame: object = None
    body_chars: int = 0


class PptxLayout:
    """Single-use layout pass producing one deck."""

    def __init__(self, blocks: List[Block], images: Iterable[PlacedImage], num_slides: int) -> None:
        self.blocks = blocks
        self.images = images_by_page(images)
        self.num_slides = max(1, num_slides)
        self.prs = Presentation()
        self.prs.slide_width = Inches(SLIDE_WIDTH_IN)
        self.prs.slide_height = Inches(SLIDE_HEIGHT_IN)
        self.placed: List[int] = []
        self.current: Optional[_ContentSlide] = None

    @property
    def slide_count(self) -> int:
        return len(self.prs.slides)

    def render(self) -> RenderOutput:
        self._add_title_slide()

        dropped = 0
        for block in self.blocks:
            if dropped:
                dropped += 1
                continue

            if block.is_heading:
                if not self._open_slide(block.text, block.level):
                    dropped += 1
                continue

            text = block.text[:MAX_PARAGRAPH_CHARS]
            needs_slide = self.current is None or (
                self.current.body_chars > 0
                and self.current.body_chars + len(text) > MAX_BODY_CHARS
            )
            if needs_slide:
                title = self._continuation_title()
                level = self.current.level if self.current else 1
                if not self._open_slide(title, level):
                    dropped += 1
                    continue
            self._append_body(text)

        if dropped:
            logger.warning(
                "[PPTX] Slide limit %d reached, %d blocks not laid out",
                self.num_slides,
                dropped,
            )
        log_unplaced("PPTX", self.images, self.placed, self.slide_count)
        logger.info(
            "[PPTX] Complete: %d slides, %d images placed",
            self.slide_count,
            len(self.placed),
        )

        buffer = io.BytesIO()
        self.prs.save(buffer)
        return RenderOutput(
            content=buffer.getvalue(),
            pages=self.slide_count,
            images_placed=len(self.placed),
        )

    # ------------------------------------------------------------------
    # Slides
    # ------------------------------------------------------------------

    def _new_slide(self):
        return self.prs.slides.add_slide(self.prs.slide_layouts[BLANK_LAYOUT])

    def _add_title_slide(self) -> None:
        slide = self._new_slide()
        title = next((b.text for b in self.blocks if b.is_heading), None)
        if not title:
            return
        box = slide.shapes.add_textbox(
            Inches(SIDE_MARGIN_IN), Inches(2.5), Inches(FULL_WIDTH_IN), Inches(1.5)
        )
        frame = box.text_frame
        frame.word_wrap = True
        paragraph = frame.paragraphs[0]
        paragraph.alignment = PP_ALIGN.CENTER
        run = paragraph.add_run()
        run.text = title
        run.font.size = Pt(TITLE_SLIDE_SIZE)
        run.font.bold = True

    def _continuation_title(self) -> Optional[str]:
        if self.current is None or not self.current.title:
            return None
        base = self.current.title
        return base if base.endswith(" (cont.)") else f"{base} (cont.)"

    def _open_slide(self, title: Optional[str], level: int) -> bool:
        """Start a content slide; False when the slide budget is spent."""
        if self.slide_count >= self.num_slides:
            return False

        slide_index = self.slide_count
        slide = self._new_slide()

        if title:
            box = slide.shapes.add_textbox(
                Inches(SIDE_MARGIN_IN), Inches(0.4), Inches(FULL_WIDTH_IN), Inches(1.0)
            )
            frame = box.text_frame
            frame.word_wrap = True
            run = frame.paragraphs[0].add_run()
            run.text = title
            run.font.size = Pt(HEADING_SIZES.get(level, HEADING_SIZES[1]))
            run.font.bold = True

        body_width = FULL_WIDTH_IN
        if self._place_image(slide, slide_index - 1):
            body_width = TEXT_WITH_IMAGE_WIDTH_IN

        self.current = _ContentSlide(slide=slide, title=title, level=level, body_width_in=body_width)
        return True

    def _append_body(self, text: str) -> None:
        current = self.current
        if current.body_frame is None:
            box = current.slide.shapes.add_textbox(
                Inches(SIDE_MARGIN_IN),
                Inches(BODY_TOP_IN),
                Inches(current.body_width_in),
                Inches(BODY_HEIGHT_IN),
            )
            current.body_frame = box.text_frame
            current.body_frame.word_wrap = True
            paragraph = current.body_frame.paragraphs[0]
        else:
            paragraph = current.body_frame.add_paragraph()

        run = paragraph.add_run()
        run.text = text
        run.font.size = Pt(BODY_SIZE)
        paragraph.space_after = Pt(6)
        current.body_chars += len(text)

    def _place_image(self, slide, page_index: int) -> bool:
        image = self.images.get(page_index)
        if image is None or page_index in self.placed:
            return False

        size = image.pixel_size()
        if size is None:
            return False
        width, height = fit_within(
            IMAGE_MAX_WIDTH_IN,
            IMAGE_MAX_WIDTH_IN * size[1] / max(size[0], 1),
            IMAGE_MAX_WIDTH_IN,
            BODY_HEIGHT_IN,
        )
        try:
            slide.shapes.add_picture(
                io.BytesIO(image.data),
                Inches(IMAGE_LEFT_IN),
                Inches(BODY_TOP_IN),
                width=Inches(width),
                height=Inches(height),
            )
        except Exception as exc:
            logger.warning("[PPTX] Failed to embed image for page %d: %s", page_index + 1, exc)
            return False

        self.placed.append(page_index)
        logger.info("[PPTX] ✓ Placed image on slide %d (target page %d)", page_index + 2, page_index + 1)
        return True


def render_pptx(content: str, images: Iterable[PlacedImage] = (), num_slides: int = 10) -> RenderOutput:
    """Lay out *content* as a widescreen deck of at most *num_slides* slides."""
    blocks = parse_blocks(content, regroup_short=False)
    return PptxLayout(blocks, images, num_slides).render()
