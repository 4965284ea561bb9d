"""
OpenAI client used for whitepaper generation.

Talks to the OpenAI REST API directly over httpx (chat completions,
embeddings and DALL-E image generation).

Public API
----------
OpenAIService.chat_completion(messages, context=None, ...) -> str
OpenAIService.get_embedding(text)                           -> List[float]
OpenAIService.generate_image_url(prompt)                    -> Optional[str]
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from app.config import settings
from app.errors import LLMServiceError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default system prompts, used when the caller does not supply its own
# ---------------------------------------------------------------------------

_PLAIN_TEXT_RULE = (
    "IMPORTANT: Write in a natural, conversational tone. Do not use markdown "
    "formatting like ### headers, **bold**, *italic*, code blocks, or bullet "
    "points. Write as if you're speaking directly to the user in plain, "
    "human-friendly text."
)

_SYSTEM_PROMPT_WITH_CONTEXT = """\
You are an intelligent research assistant for geolocation games. Use the following \
context from the knowledge base to answer questions accurately and helpfully:

{context}

If the context doesn't contain relevant information, use your general knowledge \
but indicate when you're doing so.

{rule}\
"""

_SYSTEM_PROMPT_DEFAULT = """\
You are an intelligent research assistant for geolocation games. Provide helpful, \
accurate information about geolocation games, game mechanics, location-based \
gaming, and related research content.

{rule}\
"""

DEFAULT_MAX_TOKENS = 4000


class OpenAIService:
    """
    Thin async wrapper over the OpenAI REST API.

    Every call opens its own ``httpx.AsyncClient``; failures raise
    ``LLMServiceError`` so the whitepaper route can report them.
    """

    def __init__(self) -> None:
        self.base_url = settings.OPENAI_BASE_URL.rstrip("/")
        self.api_key = settings.OPENAI_API_KEY
        self.model = settings.OPENAI_MODEL
        self.embed_model = settings.OPENAI_EMBED_MODEL
        self.image_model = settings.OPENAI_IMAGE_MODEL
        self.timeout = httpx.Timeout(float(settings.OPENAI_TIMEOUT), connect=10.0)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def chat_completion(
        self,
        messages: List[Dict[str, str]],
        context: Optional[str] = None,
        temperature: float = 0.7,
        preserve_system_message: bool = False,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Run a chat completion and return the assistant text ("" if empty).

        A default system message is prepended unless *messages* already has
        one and *preserve_system_message* is set.
        """
        has_system = any(m.get("role") == "system" for m in messages)
        if has_system and preserve_system_message:
            all_messages = list(messages)
        else:
            all_messages = [
                {"role": "system", "content": self._default_system_prompt(context)},
                *messages,
            ]

        limit = max_tokens or DEFAULT_MAX_TOKENS
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": all_messages,
            "temperature": temperature,
        }
        # gpt-5 family rejects max_tokens
        if self.model.startswith("gpt-5"):
            payload["max_completion_tokens"] = limit
        else:
            payload["max_tokens"] = limit

        logger.info(
            "chat_completion: model=%s max_tokens=%d messages=%d",
            self.model,
            limit,
            len(all_messages),
        )
        data = await self._post("/chat/completions", payload)

        choices = data.get("choices") or []
        content = ""
        if choices:
            content = (choices[0].get("message") or {}).get("content") or ""
        if not content:
            logger.warning("chat_completion: empty response from OpenAI")
        return content

    async def get_embedding(self, text: str) -> List[float]:
        """Embed *text* with the configured embedding model."""
        data = await self._post(
            "/embeddings",
            {"model": self.embed_model, "input": text},
        )
        try:
            return data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMServiceError(
                "OpenAI embedding response was malformed",
                details=str(exc),
            ) from exc

    async def generate_image_url(self, prompt: str) -> Optional[str]:
        """DALL-E fallback used by the media endpoint.  Returns a hosted URL."""
        data = await self._post(
            "/images/generations",
            {
                "model": self.image_model,
                "prompt": prompt,
                "n": 1,
                "size": "1024x1024",
                "quality": "standard",
            },
        )
        images = data.get("data") or []
        if not images:
            return None
        return images[0].get("url")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _default_system_prompt(context: Optional[str]) -> str:
        if context:
            return _SYSTEM_PROMPT_WITH_CONTEXT.format(context=context, rule=_PLAIN_TEXT_RULE)
        return _SYSTEM_PROMPT_DEFAULT.format(rule=_PLAIN_TEXT_RULE)

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise LLMServiceError(
                "OpenAI API key must be set",
                hint="Set OPENAI_API_KEY in your .env file",
            )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    f"{self.base_url}{path}",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json=payload,
                )
        except httpx.TimeoutException as exc:
            logger.error("OpenAI %s timed out: %s", path, exc)
            raise LLMServiceError(f"OpenAI request to {path} timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("OpenAI %s connection error: %s", path, exc)
            raise LLMServiceError(f"OpenAI connection error: {exc}") from exc

        if resp.status_code != 200:
            error_message = resp.text[:300]
            try:
                body = resp.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and isinstance(body.get("error"), dict):
                error_message = body["error"].get("message") or error_message
            logger.error("OpenAI %s returned HTTP %d: %s", path, resp.status_code, error_message)
            raise LLMServiceError(
                f"OpenAI API error ({resp.status_code}): {error_message}",
                status_code=502,
            )

        return resp.json()
