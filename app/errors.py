"""
Service-level exceptions.

Services raise these; ``app.main`` turns them into JSON error responses of the
form ``{"error", "message", "details", "hint"}``.
"""
from __future__ import annotations

from typing import Dict, Optional


class ServiceError(Exception):
    """Base class for failures that should reach the client as structured JSON."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        hint: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        self.hint = hint
        if status_code is not None:
            self.status_code = status_code


class LLMServiceError(ServiceError):
    """OpenAI chat / embedding / image call failed."""


class VectorSearchError(ServiceError):
    """Pinecone query failed."""


class DocumentRenderError(ServiceError):
    """A PDF / DOCX / PPTX renderer could not build the document."""


class WhitepaperGenerationError(ServiceError):
    """The whitepaper pipeline could not produce content."""


def describe_generation_error(exc: Exception) -> Dict[str, str]:
    """
    Map a low-level exception onto a client-facing message + details pair.

    Recognises the common OpenAI failure modes (bad key, rate limit, bad model)
    by their message text.
    """
    message = str(exc) or exc.__class__.__name__
    details = message

    if "API key" in message:
        message = "OpenAI API key is invalid or missing"
        details = "Please check OPENAI_API_KEY in your .env file"
    elif "rate limit" in message.lower():
        message = "API rate limit exceeded"
        details = "Please wait a moment and try again"
    elif "model" in message:
        details = f"Check your OPENAI_MODEL environment variable. Error: {message}"
        message = "Invalid or unavailable OpenAI model"

    return {"message": message, "details": details}
