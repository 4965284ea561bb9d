"""
Types shared by the PDF, DOCX and PPTX renderers.
"""
from __future__ import annotations

import base64
import binascii
import dataclasses
import io
import logging
from typing import Dict, Iterable, Optional, Tuple

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class PlacedImage:
    """An illustration targeted at a 0-indexed page (or slide-minus-title)."""

    page_index: int
    data: bytes
    mime_type: str = "image/png"

    @classmethod
    def from_base64(
        cls, page_index: int, payload: str, mime_type: str = "image/png"
    ) -> Optional["PlacedImage"]:
        """Decode *payload*; ``None`` (logged) if it is not valid base64."""
        try:
            data = base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as exc:
            logger.error("Image for page %d is not valid base64: %s", page_index + 1, exc)
            return None
        if not data:
            return None
        return cls(page_index=page_index, data=data, mime_type=mime_type)

    def pixel_size(self) -> Optional[Tuple[int, int]]:
        """(width, height) in pixels, or ``None`` if Pillow cannot read the bytes."""
        try:
            with Image.open(io.BytesIO(self.data)) as img:
                return img.size
        except (UnidentifiedImageError, OSError) as exc:
            logger.warning("Unreadable image for page %d: %s", self.page_index + 1, exc)
            return None


@dataclasses.dataclass
class RenderOutput:
    """What a renderer hands back to the exporter."""

    content: bytes
    pages: int
    images_placed: int = 0


def images_by_page(images: Iterable[PlacedImage]) -> Dict[int, PlacedImage]:
    """Index images by target page, keeping the first one for each page."""
    indexed: Dict[int, PlacedImage] = {}
    for image in images:
        indexed.setdefault(image.page_index, image)
    return indexed


def fit_within(width: float, height: float, max_width: float, max_height: float) -> Tuple[float, float]:
    """Scale (width, height) down (never up) so it fits the box, keeping aspect ratio."""
    if width > max_width:
        scale = max_width / width
        width, height = width * scale, height * scale
    if height > max_height:
        scale = max_height / height
        width, height = width * scale, height * scale
    return width, height


def log_unplaced(kind: str, targets: Iterable[int], placed: Iterable[int], rendered_pages: int) -> None:
    missing = sorted(set(targets) - set(placed))
    if missing:
        logger.warning(
            "[%s] %d image(s) not placed (target pages %s; document has %d pages)",
            kind,
            len(missing),
            ", ".join(str(p + 1) for p in missing),
            rendered_pages,
        )
