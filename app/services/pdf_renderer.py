"""
PDF renderer: the pagination engine.

Text is laid out line by line on US Letter pages with a moving vertical
cursor.  Page breaks are decided before every block and after every wrapped
line; an illustration is dropped in at the top of its target page the
moment the cursor reaches that page.

Typography
----------
body  12 pt Helvetica       line height 18    16 pt after
h1    18 pt Helvetica-Bold  line height 21.6  24 pt before, 12 pt after
h2    16 pt Helvetica-Bold  line height 20.8  20 pt before, 10 pt after
h3    14 pt Helvetica-Bold  line height 18    20 pt before, 10 pt after
"""
from __future__ import annotations

import dataclasses
import io
import logging
from typing import Dict, Iterable, List, Set

from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from app.errors import DocumentRenderError
from app.services.content_formatter import Block, parse_blocks
from app.services.document_layout import (
    PlacedImage,
    RenderOutput,
    fit_within,
    images_by_page,
    log_unplaced,
)

logger = logging.getLogger(__name__)

PAGE_WIDTH = 612.0
PAGE_HEIGHT = 792.0
MARGIN = 72.0
TOP_MARGIN = 72.0
BOTTOM_MARGIN = 72.0
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN

PARAGRAPH_SPACING = 16.0
IMAGE_MAX_HEIGHT_RATIO = 0.4

BODY_FONT = "Helvetica"
HEADING_FONT = "Helvetica-Bold"


@dataclasses.dataclass(frozen=True)
class TextStyle:
    font: str
    size: float
    line_height: float
    space_before: float
    space_after: float


STYLES: Dict[int, TextStyle] = {
    0: TextStyle(BODY_FONT, 12, 12 * 1.5, 0, PARAGRAPH_SPACING),
    1: TextStyle(HEADING_FONT, 18, 18 * 1.2, 24, 12),
    2: TextStyle(HEADING_FONT, 16, 16 * 1.3, 20, 10),
    3: TextStyle(HEADING_FONT, 14, 12 * 1.5, 20, 10),
}
BODY_LINE_HEIGHT = STYLES[0].line_height


def wrap_text(text: str, font: str, size: float, max_width: float = CONTENT_WIDTH) -> List[str]:
    """
    Greedy word wrap by measured string width.

    A single word wider than *max_width* gets a line to itself.
    """
    lines: List[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if current and stringWidth(candidate, font, size) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


class PdfLayout:
    """
    Single-use layout pass over a list of blocks.

    Call ``render()`` once; the instance keeps the cursor (``y``), the
    current page index and which target pages already got their image.
    """

    def __init__(self, blocks: List[Block], images: Iterable[PlacedImage]) -> None:
        self.blocks = blocks
        self.images = images_by_page(images)
        self.buffer = io.BytesIO()
        self.canvas = canvas.Canvas(self.buffer, pagesize=(PAGE_WIDTH, PAGE_HEIGHT))
        self.y = PAGE_HEIGHT - TOP_MARGIN
        self.page_index = 0
        self.placed: Set[int] = set()

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def render(self) -> RenderOutput:
        self._place_image_if_needed(self.page_index)

        for i, block in enumerate(self.blocks):
            style = STYLES[block.level]

            if block.is_heading and i > 0:
                if self.y - style.space_before < BOTTOM_MARGIN + BODY_LINE_HEIGHT:
                    self._new_page()
                else:
                    self.y -= style.space_before

            if self.y - style.line_height < BOTTOM_MARGIN:
                self._new_page()

            lines = wrap_text(block.text, style.font, style.size)
            for n, line in enumerate(lines):
                self._draw_line(line, style)
                if n == len(lines) - 1:
                    self.y -= style.line_height + style.space_after
                else:
                    self.y -= style.line_height
                    if self.y - style.line_height < BOTTOM_MARGIN:
                        self._new_page()

        self.canvas.save()
        pages = self.page_index + 1

        logger.info(
            "[PDF] Complete: %d pages, %d/%d images placed",
            pages,
            len(self.placed),
            len(self.images),
        )
        if self.images and not self.placed:
            logger.error("[PDF] %d images were generated but none were placed", len(self.images))
        log_unplaced("PDF", self.images, self.placed, pages)

        return RenderOutput(
            content=self.buffer.getvalue(),
            pages=pages,
            images_placed=len(self.placed),
        )

    # ------------------------------------------------------------------
    # Cursor / page management
    # ------------------------------------------------------------------

    def _start_page(self) -> None:
        self.canvas.showPage()
        self.y = PAGE_HEIGHT - TOP_MARGIN
        self.page_index += 1

    def _new_page(self) -> None:
        """Break the page and drop in the image targeted at the page just reached."""
        self._start_page()
        self._place_image_if_needed(self.page_index)

    def _draw_line(self, line: str, style: TextStyle) -> None:
        self.canvas.setFont(style.font, style.size)
        self.canvas.setFillColorRGB(0, 0, 0)
        self.canvas.drawString(MARGIN, self.y, line)

    def _place_image_if_needed(self, page_index: int) -> None:
        if page_index in self.placed:
            return
        image = self.images.get(page_index)
        if image is None:
            return

        try:
            reader = ImageReader(io.BytesIO(image.data))
            natural_width, natural_height = reader.getSize()
        except Exception as exc:
            logger.error("[PDF] Failed to embed image for page %d: %s", page_index + 1, exc)
            return

        width, height = fit_within(
            float(natural_width),
            float(natural_height),
            CONTENT_WIDTH,
            PAGE_HEIGHT * IMAGE_MAX_HEIGHT_RATIO,
        )

        if self.y - height - PARAGRAPH_SPACING < BOTTOM_MARGIN:
            self._start_page()

        self.canvas.drawImage(
            reader,
            MARGIN + (CONTENT_WIDTH - width) / 2,
            self.y - height,
            width=width,
            height=height,
            mask="auto",
        )
        self.y -= height + PARAGRAPH_SPACING * 1.5
        self.placed.add(page_index)
        logger.info(
            "[PDF] ✓ Placed image on page %d (target page %d)",
            self.page_index + 1,
            page_index + 1,
        )


def render_pdf(content: str, images: Iterable[PlacedImage] = ()) -> RenderOutput:
    """Lay out *content* (with ``#`` heading markup) and *images* as a PDF."""
    if not content or not content.strip():
        raise DocumentRenderError("Cannot generate PDF: content is empty")

    blocks = parse_blocks(content)
    logger.info("[PDF] Split into %d blocks", len(blocks))
    return PdfLayout(blocks, images).render()
