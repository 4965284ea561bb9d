"""
Google Gemini client for illustrations and video scene descriptions.

Failures never raise; the whitepaper pipeline treats a missing image as
"skip this page", so every problem is logged and ``None`` is returned.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, Optional

import httpx

from app.config import settings

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class GeneratedImage:
    """Base64 image payload as returned by Gemini."""

    base64: str
    mime_type: str = "image/png"

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64}"


def extract_image(data: Dict[str, Any]) -> Optional[GeneratedImage]:
    """
    Pull the first image out of a ``generateContent`` response.

    Gemini returns images as ``inlineData`` parts (``inline_data`` in some
    SDK dumps); occasionally the model answers with a ``data:image/...``
    URL in a text part instead.
    """
    for candidate in data.get("candidates") or []:
        parts = (candidate.get("content") or {}).get("parts") or []
        for part in parts:
            inline = part.get("inline_data") or part.get("inlineData")
            if inline and inline.get("data"):
                mime_type = inline.get("mime_type") or inline.get("mimeType") or "image/png"
                return GeneratedImage(base64=inline["data"], mime_type=mime_type)

            text = part.get("text") or ""
            if text.startswith("data:image/") and "," in text:
                header, payload = text.split(",", 1)
                mime_type = header[len("data:"):].split(";", 1)[0] or "image/png"
                return GeneratedImage(base64=payload, mime_type=mime_type)
    return None


class GeminiImageService:
    """Image generation via ``models/{GEMINI_IMAGE_MODEL}:generateContent``."""

    IMAGE_TEMPERATURE: float = 0.4
    VIDEO_TEMPERATURE: float = 0.8
    VIDEO_MAX_OUTPUT_TOKENS: int = 500

    def __init__(self) -> None:
        self.api_key = settings.GOOGLE_AI_API_KEY
        self.base_url = settings.GEMINI_BASE_URL.rstrip("/")
        self.image_model = settings.GEMINI_IMAGE_MODEL
        self.text_model = settings.GEMINI_TEXT_MODEL
        self.timeout = httpx.Timeout(float(settings.GEMINI_TIMEOUT), connect=10.0)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def generate_image(self, prompt: str) -> Optional[GeneratedImage]:
        """Generate one illustration for *prompt*; ``None`` if nothing came back."""
        if not self.api_key:
            logger.warning("generate_image: GOOGLE_AI_API_KEY not set, skipping")
            return None

        logger.info("generate_image: requesting image for prompt %.100s…", prompt)
        data = await self._generate(
            self.image_model,
            {
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {"temperature": self.IMAGE_TEMPERATURE},
            },
        )
        if data is None:
            return None

        image = extract_image(data)
        if image is None:
            logger.warning(
                "generate_image: no image data in response (%d candidates)",
                len(data.get("candidates") or []),
            )
            return None

        logger.info("generate_image: ✓ image generated (%d base64 chars)", len(image.base64))
        return image

    async def describe_video(self, prompt: str) -> Optional[str]:
        """Ask Gemini for a scene-by-scene video script."""
        if not self.api_key:
            return None

        data = await self._generate(
            self.text_model,
            {
                "contents": [{
                    "parts": [{
                        "text": (
                            f'Create a video script or description for: "{prompt}". '
                            "Return detailed video scene descriptions."
                        )
                    }]
                }],
                "generationConfig": {
                    "temperature": self.VIDEO_TEMPERATURE,
                    "maxOutputTokens": self.VIDEO_MAX_OUTPUT_TOKENS,
                },
            },
        )
        if data is None:
            return None

        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            logger.warning("describe_video: response had no text part")
            return None

    async def _generate(self, model: str, body: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        url = f"{self.base_url}/models/{model}:generateContent"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, params={"key": self.api_key}, json=body)
        except httpx.TimeoutException:
            logger.error("Gemini %s timed out after %.0f s", model, self.timeout.read)
            return None
        except httpx.HTTPError as exc:
            logger.error("Gemini %s connection error: %s", model, exc)
            return None

        if resp.status_code != 200:
            logger.error("Gemini %s returned HTTP %d: %s", model, resp.status_code, resp.text[:300])
            return None

        return resp.json()
