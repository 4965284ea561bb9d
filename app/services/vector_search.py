"""
Pinecone similarity search over the REST data-plane API.

Only querying lives here; the knowledge base is indexed by a separate
ingestion job.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, List, Optional

import httpx

from app.config import settings
from app.errors import VectorSearchError

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class VectorMatch:
    """One hit returned by a Pinecone query."""

    id: str
    score: float = 0.0
    metadata: Dict[str, Any] = dataclasses.field(default_factory=dict)

    @property
    def title(self) -> Optional[str]:
        return self.metadata.get("title") or None

    @property
    def text(self) -> Optional[str]:
        return self.metadata.get("text") or None


def _normalize_host(host: str) -> str:
    """Accept bare index hosts as well as full URLs."""
    host = host.strip().rstrip("/")
    if host and not host.startswith(("http://", "https://")):
        host = f"https://{host}"
    return host


class PineconeService:
    """Query a single Pinecone index."""

    API_VERSION = "2024-07"

    def __init__(self) -> None:
        self.api_key = settings.PINECONE_API_KEY
        self.host = _normalize_host(settings.PINECONE_INDEX_HOST)
        self.namespace = settings.PINECONE_NAMESPACE or None
        self.timeout = httpx.Timeout(30.0, connect=10.0)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.host)

    async def query(self, vector: List[float], top_k: Optional[int] = None) -> List[VectorMatch]:
        """
        Return the *top_k* nearest matches for *vector*, metadata included.
        *top_k* defaults to ``PINECONE_TOP_K``.

        Raises ``VectorSearchError`` on any transport or HTTP failure.
        """
        if not self.is_configured:
            raise VectorSearchError(
                "Pinecone is not configured",
                hint="Set PINECONE_API_KEY and PINECONE_INDEX_HOST",
                status_code=400,
            )

        payload: Dict[str, Any] = {
            "vector": vector,
            "topK": top_k or settings.PINECONE_TOP_K,
            "includeMetadata": True,
            "includeValues": False,
        }
        if self.namespace:
            payload["namespace"] = self.namespace

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    f"{self.host}/query",
                    headers={
                        "Api-Key": self.api_key,
                        "X-Pinecone-API-Version": self.API_VERSION,
                    },
                    json=payload,
                )
        except httpx.HTTPError as exc:
            logger.error("Pinecone query connection error: %s", exc)
            raise VectorSearchError(f"Pinecone query failed: {exc}") from exc

        if resp.status_code != 200:
            logger.error("Pinecone query returned HTTP %d: %s", resp.status_code, resp.text[:400])
            raise VectorSearchError(
                f"Pinecone query failed ({resp.status_code})",
                details=resp.text[:400],
            )

        matches = resp.json().get("matches") or []
        return [
            VectorMatch(
                id=str(m.get("id", "")),
                score=float(m.get("score") or 0.0),
                metadata=m.get("metadata") or {},
            )
            for m in matches
        ]
