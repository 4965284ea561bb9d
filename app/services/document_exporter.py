"""
Dispatch generated content to the renderer for the requested output format.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Dict, Iterable, Tuple

from app.services.docx_renderer import render_docx
from app.services.document_layout import PlacedImage
from app.services.pdf_renderer import render_pdf
from app.services.pptx_renderer import render_pptx
from app.utils.helpers import timestamped_filename, word_count

logger = logging.getLogger(__name__)

# output format -> (mime type, file extension)
FORMATS: Dict[str, Tuple[str, str]] = {
    "pdf": ("application/pdf", "pdf"),
    "docx": (
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "docx",
    ),
    "ppt": (
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "pptx",
    ),
}
TEXT_FORMAT: Tuple[str, str] = ("text/plain", "txt")


@dataclasses.dataclass
class RenderedDocument:
    content: bytes
    filename: str
    mime_type: str
    extension: str
    pages: int
    images_placed: int = 0


def export_document(
    output_format: str,
    content: str,
    images: Iterable[PlacedImage] = (),
    num_pages: int = 10,
) -> RenderedDocument:
    """
    Render *content* in *output_format*.

    ``pdf``, ``docx`` and ``ppt`` get their own renderer; any other format
    falls back to UTF-8 plain text.  *num_pages* caps the slide count for
    ``ppt`` and is only an estimate for plain text.
    """
    images = list(images)
    mime_type, extension = FORMATS.get(output_format, TEXT_FORMAT)
    logger.info(
        "Exporting %s (%d words, %d images)",
        extension.upper(),
        word_count(content),
        len(images),
    )

    if output_format == "pdf":
        output = render_pdf(content, images)
    elif output_format == "docx":
        output = render_docx(content, images)
    elif output_format == "ppt":
        output = render_pptx(content, images, num_slides=num_pages)
    else:
        return RenderedDocument(
            content=content.encode("utf-8"),
            filename=timestamped_filename("whitepaper", extension),
            mime_type=mime_type,
            extension=extension,
            pages=num_pages,
        )

    return RenderedDocument(
        content=output.content,
        filename=timestamped_filename("whitepaper", extension),
        mime_type=mime_type,
        extension=extension,
        pages=output.pages,
        images_placed=output.images_placed,
    )
