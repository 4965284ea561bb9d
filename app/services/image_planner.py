"""
Decide which pages get an illustration.

The client sends a free-text frequency such as ``"1 image per 3 pages"``
(or ``"2 image per 5 slides"``).  Images are placed on the *last* page of
each group: for one image per two pages on ten pages that is 0-indexed
pages 1, 3, 5, 7 and 9.
"""
from __future__ import annotations

import dataclasses
import re
from typing import Iterable, List, Optional

from app.config import settings
from app.services.frameworks import get_framework

_FREQUENCY = re.compile(r"(\d+)\s*image.*?per\s*(\d+)", re.IGNORECASE)


@dataclasses.dataclass(frozen=True)
class ImageFrequency:
    images_per_group: int
    pages_per_group: int

    @property
    def is_active(self) -> bool:
        return self.images_per_group > 0 and self.pages_per_group > 0


def parse_image_frequency(value: Optional[str]) -> Optional[ImageFrequency]:
    """Parse ``"<n> image(s) per <m> pages"``; ``None`` if the string does not match."""
    if not value or not isinstance(value, str):
        return None
    match = _FREQUENCY.search(value)
    if not match:
        return None
    return ImageFrequency(int(match.group(1)), int(match.group(2)))


def plan_image_pages(
    num_pages: int,
    frequency: Optional[ImageFrequency],
    max_pages: Optional[int] = None,
) -> List[int]:
    """
    Return the 0-indexed pages that should carry an image, in order.

    Each group of ``pages_per_group`` pages gets ``images_per_group`` images
    starting on the group's last page and spilling onto the following pages.
    Pages past the document end are dropped, and a page is never listed twice.
    """
    if frequency is None or not frequency.is_active:
        return []

    total_pages = min(num_pages, max_pages or settings.MAX_PAGES)
    groups = total_pages // frequency.pages_per_group

    pages: List[int] = []
    seen = set()
    for group in range(groups):
        base = (group + 1) * frequency.pages_per_group - 1
        for offset in range(frequency.images_per_group):
            page = base + offset
            if page < total_pages and page not in seen:
                seen.add(page)
                pages.append(page)
    return pages


def build_image_prompt(
    topic: str,
    framework_ids: Iterable[str],
    page_index: int,
    total_pages: int,
) -> str:
    """Illustration prompt for one page of the whitepaper."""
    names = [
        fid.replace("-", " ") if get_framework(fid) else fid
        for fid in framework_ids
    ]
    related = f" related to {', '.join(names)}" if names else ""
    return (
        f"Professional whitepaper illustration: {topic}{related}. "
        f"Create a visual diagram, chart, or infographic suitable for page "
        f"{page_index + 1} of a {total_pages}-page research whitepaper. "
        "Style: clean, professional, data visualization or conceptual diagram."
    )
