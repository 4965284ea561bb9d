"""
Post-processing and block parsing for AI-generated whitepaper text.

The LLM is asked for plain text with ``#``/``##``/``###`` headings only, but
it routinely slips in markdown emphasis, glues body text onto heading lines
or forgets blank lines.  This module:

* normalises raw model output so every heading sits on its own line with a
  blank line on either side (``normalize_generated_content``),
* reports what was wrong with it (``inspect_formatting``),
* splits text into paragraphs and classifies each one as a heading level or
  body text with all markup removed (``split_paragraphs`` / ``parse_block``).

The renderers only ever see ``Block`` objects; no markup reaches a page.
"""
from __future__ import annotations

import dataclasses
import logging
import re
from typing import List, Optional

from app.utils.helpers import preview, word_count

logger = logging.getLogger(__name__)

# Below this many blank-line paragraphs the text is regrouped line by line.
MIN_BLANK_LINE_PARAGRAPHS = 5

# Text glued onto a heading line is only split off when it is this long.
MIN_TRAILING_BODY_WORDS = 6

_HEADING_LINE = re.compile(r"^#{1,3}\s")
_HEADING_BLOCK = re.compile(r"(#{1,3})\s+(.+)")
_HEADING_MARKER = re.compile(r"^(#{1,3})[ \t]*(?=[^#\s])", re.MULTILINE)
_HEADING_TEXT_LINE = re.compile(r"^(#{1,3}) ([^\n]+)$", re.MULTILINE)
# "1.", "2.3", "IV." or "a)" at the start of a heading is numbering, not a sentence.
_HEADING_ENUMERATOR = re.compile(r"(?:\d+(?:\.\d+)*\.?|[IVXLC]+\.|[A-Za-z]\))\s+")
_SENTENCE_END = re.compile(r"[A-Za-z0-9)\]][.!?][ \t]+(?=\S)")


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class Block:
    """One paragraph of render-ready text.  ``level`` is 0 for body, 1-3 for headings."""

    level: int
    text: str

    @property
    def is_heading(self) -> bool:
        return self.level > 0


@dataclasses.dataclass
class FormattingReport:
    """Counts gathered after post-processing, used for log warnings only."""

    content_length: int
    bold_markers: int
    bold_alt_markers: int
    italic_markers: int
    heading_count: int
    paragraph_count: int

    @property
    def markdown_violations(self) -> int:
        return self.bold_markers + self.bold_alt_markers + self.italic_markers

    def warnings(self) -> List[str]:
        issues = []
        if self.markdown_violations:
            issues.append(f"{self.markdown_violations} markdown violations remain")
        if self.heading_count < 3:
            issues.append(f"only {self.heading_count} headings, document may lack structure")
        if self.paragraph_count < 10:
            issues.append(
                f"only {self.paragraph_count} paragraphs, document may be poorly structured"
            )
        return issues


# ---------------------------------------------------------------------------
# Whole-document normalisation
# ---------------------------------------------------------------------------

def _strip_emphasis(text: str) -> str:
    text = re.sub(r"\*\*([^*]+)\*\*", r"\1", text)
    text = re.sub(r"\*([^*]+)\*", r"\1", text)
    text = re.sub(r"__([^_]+)__", r"\1", text)
    text = re.sub(r"_([^_]+)_", r"\1", text)
    text = text.replace("**", "").replace("__", "").replace("*", "")
    return text.replace("_", " ")


def _split_heading_body(match: "re.Match[str]") -> str:
    marker, text = match.group(1), match.group(2)
    enumerator = _HEADING_ENUMERATOR.match(text)
    end = _SENTENCE_END.search(text, enumerator.end() if enumerator else 0)
    if end is None:
        return match.group(0)
    title, body = text[: end.start() + 2], text[end.end():]
    if word_count(body) < MIN_TRAILING_BODY_WORDS:
        return match.group(0)
    return f"{marker} {title}\n\n{body}"


def normalize_generated_content(text: str) -> str:
    """
    Enforce the plain-text-plus-headings contract on raw LLM output.

    Heading levels are preserved; ``#`` markers are kept so the renderers can
    detect headings later.
    """
    if not text:
        return ""

    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _strip_emphasis(text)

    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"\n\s+\n", "\n\n", text)

    text = _HEADING_MARKER.sub(r"\1 ", text)
    text = _HEADING_TEXT_LINE.sub(_split_heading_body, text)

    text = re.sub(r"([^\n])\n(#{1,3} )", r"\1\n\n\2", text)
    text = re.sub(r"(?m)^(#{1,3} [^\n]+)\n([^\n])", r"\1\n\n\2", text)

    return text.strip()


def inspect_formatting(text: str) -> FormattingReport:
    return FormattingReport(
        content_length=len(text),
        bold_markers=text.count("**"),
        bold_alt_markers=text.count("__"),
        italic_markers=len(re.findall(r"\*[^*]", text)),
        heading_count=len(re.findall(r"(?m)^#{1,3}\s", text)),
        paragraph_count=len([p for p in re.split(r"\n\n+", text) if p.strip()]),
    )


# ---------------------------------------------------------------------------
# Paragraph splitting
# ---------------------------------------------------------------------------

def split_paragraphs(content: str, regroup_short: bool = True) -> List[str]:
    """
    Split *content* on blank lines.

    With *regroup_short*, text that yields fewer than
    ``MIN_BLANK_LINE_PARAGRAPHS`` paragraphs is re-split line by line:
    heading lines become their own paragraph and consecutive body lines are
    joined with a space.
    """
    normalized = content.replace("\r\n", "\n").replace("\r", "\n")
    paragraphs = [p for p in re.split(r"\n\n+", normalized) if p.strip()]

    if regroup_short and len(paragraphs) < MIN_BLANK_LINE_PARAGRAPHS:
        paragraphs = []
        current: List[str] = []
        for line in normalized.split("\n"):
            line = line.strip()
            if not line:
                continue
            if _HEADING_LINE.match(line):
                if current:
                    paragraphs.append(" ".join(current))
                    current = []
                paragraphs.append(line)
            else:
                current.append(line)
        if current:
            paragraphs.append(" ".join(current))

    if not paragraphs and content.strip():
        paragraphs = [content.strip()]
    return paragraphs


# ---------------------------------------------------------------------------
# Block parsing
# ---------------------------------------------------------------------------

def _remove_markup(text: str) -> str:
    text = text.replace("**", "").replace("__", "").replace("*", "")
    return text.replace("_", " ")


def parse_block(paragraph: str) -> Optional[Block]:
    """
    Classify one paragraph and strip every markup character from it.

    Heading detection runs on the raw paragraph, before any cleaning.
    Returns ``None`` when nothing printable is left.
    """
    raw = paragraph.strip()
    match = _HEADING_BLOCK.fullmatch(raw)

    if match:
        level = len(match.group(1))
        text = match.group(2).strip()
    else:
        level = 0
        text = re.sub(r"(?m)^#+\s*", "", raw)
        text = re.sub(r"#+", "", text)

    text = _remove_markup(text)
    text = re.sub(r"\s+", " ", text).strip()
    if not text:
        return None

    if "#" in text or "**" in text or "__" in text:
        logger.error("Markdown symbols left after cleaning: %s", preview(text, 100))
        text = re.sub(r"#+", "", text)
        text = re.sub(r"\s+", " ", _remove_markup(text)).strip()
        if not text:
            return None

    return Block(level=level, text=text)


def parse_blocks(content: str, regroup_short: bool = True) -> List[Block]:
    """``split_paragraphs`` + ``parse_block``, dropping empty paragraphs."""
    blocks = []
    for paragraph in split_paragraphs(content, regroup_short=regroup_short):
        block = parse_block(paragraph)
        if block is not None:
            blocks.append(block)
    return blocks
