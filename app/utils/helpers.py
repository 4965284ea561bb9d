"""
Common utility functions and helpers.
"""
from typing import Any, List, Optional
import json
import math
import re
import time


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves away from zero for positives.

    Word and token budgets use this instead of ``round()`` so that 2.5 → 3.
    """
    return int(math.floor(value + 0.5))


def word_count(text: Optional[str]) -> int:
    """
    Count whitespace-separated words.

    Args:
        text: Raw text (may be None)

    Returns:
        Number of words; 0 for empty or blank text
    """
    if not text or not text.strip():
        return 0
    return len(text.split())


def kebab_case(name: str) -> str:
    """
    Turn a display name into a kebab-case identifier.

    Args:
        name: e.g. "Porter's Five Forces"

    Returns:
        e.g. "porter-s-five-forces"
    """
    return re.sub(r'[^a-z0-9]+', '-', name.lower()).strip('-')


def title_from_id(identifier: str) -> str:
    """
    Turn a kebab-case id into Title Case words ("value-chain" → "Value Chain").
    """
    return re.sub(r'\b\w', lambda m: m.group(0).upper(), identifier.replace('-', ' '))


def preview(text: Optional[str], limit: int = 80) -> str:
    """Single-line preview of *text* for log messages."""
    if not text:
        return ""
    flat = re.sub(r'\s+', ' ', text).strip()
    return flat if len(flat) <= limit else flat[:limit] + "..."


def timestamped_filename(stem: str, extension: str) -> str:
    """Return ``<stem>-<epoch millis>.<extension>``."""
    return f"{stem}-{int(time.time() * 1000)}.{extension}"


def parse_json_array(response: str) -> List[Any]:
    """
    Extract a JSON array from messy LLM output.

    Handles:
    - Markdown code fences (```json … ```)
    - Prose before / after the array
    - Trailing commas before ] or }

    Returns an empty list when nothing parseable is found.
    """
    if not response:
        return []

    text = re.sub(r'```(?:json)?\s*', '', response).replace('```', '').strip()

    match = re.search(r'\[[\s\S]*\]', text)
    if match:
        text = match.group(0)

    for candidate in (text, re.sub(r',\s*([\]}])', r'\1', text)):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, list):
            return parsed
    return []
