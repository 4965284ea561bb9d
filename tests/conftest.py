"""
Shared fixtures for Whitepaper Studio backend tests.

Uses the database named by TEST_DATABASE_URL, a local SQLite file by default.
Each test function gets its own session; tables are created before and
dropped after every test so each test starts with a clean slate.

OpenAI, Pinecone and Gemini are replaced by in-memory fakes through
``app.dependency_overrides``.
"""
from __future__ import annotations

import base64
import io
import os
from typing import AsyncGenerator, Dict, List, Optional

import pytest
import pytest_asyncio
import httpx
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# Override DATABASE_URL *before* any app module is imported, so that
# settings.DATABASE_URL and the global engine point at the test DB.
TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    "sqlite+aiosqlite:///./test_whitepapers.db",
)
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

from app.config import settings  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.dependencies.services import (  # noqa: E402
    get_image_service,
    get_llm_service,
    get_vector_store,
)
from app.errors import LLMServiceError  # noqa: E402
from app.main import app  # noqa: E402
from app.services.image_generator import GeneratedImage  # noqa: E402
from app.services.vector_search import VectorMatch  # noqa: E402


# ---------------------------------------------------------------------------
# Content helpers
# ---------------------------------------------------------------------------

def make_png(width: int = 64, height: int = 48, color: str = "steelblue") -> bytes:
    buffer = io.BytesIO()
    # uncompressed so the base64 payload is well above the minimum image size
    Image.new("RGB", (width, height), color).save(buffer, format="PNG", compress_level=0)
    return buffer.getvalue()


def make_png_base64(width: int = 64, height: int = 48) -> str:
    return base64.b64encode(make_png(width, height)).decode("ascii")


def make_paragraph(words: int, seed: str = "market") -> str:
    filler = f"The {seed} analysis shows steady growth across every region we studied"
    tokens = (filler.split() * (words // 12 + 1))[:words]
    return " ".join(tokens) + "."


def make_whitepaper(sections: int = 4, paragraphs: int = 3, words: int = 60) -> str:
    """Heading-marked text shaped like a model answer."""
    parts = ["# Executive Summary", make_paragraph(words, "summary")]
    for n in range(1, sections + 1):
        parts.append(f"## Section {n}")
        parts.extend(make_paragraph(words, f"section{n}") for _ in range(paragraphs))
    parts.append("# Conclusion")
    parts.append(make_paragraph(words, "conclusion"))
    return "\n\n".join(parts)


# ---------------------------------------------------------------------------
# Service fakes
# ---------------------------------------------------------------------------

class FakeLLM:
    """Stands in for OpenAIService; answers are popped from ``responses``."""

    def __init__(self, responses: Optional[List[str]] = None, configured: bool = True) -> None:
        self.responses = list(responses or [])
        self.configured = configured
        self.calls: List[Dict] = []
        self.embedded: List[str] = []
        self.fail_with: Optional[Exception] = None
        self.image_url: Optional[str] = "https://images.example.com/generated.png"

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def chat_completion(
        self,
        messages,
        context=None,
        temperature=0.7,
        preserve_system_message=False,
        max_tokens=None,
    ) -> str:
        self.calls.append(
            {
                "messages": list(messages),
                "temperature": temperature,
                "preserve_system_message": preserve_system_message,
                "max_tokens": max_tokens,
            }
        )
        if self.fail_with is not None:
            raise self.fail_with
        return self.responses.pop(0) if self.responses else ""

    async def get_embedding(self, text: str) -> List[float]:
        if not self.configured:
            raise LLMServiceError("OpenAI API key must be set")
        self.embedded.append(text)
        return [0.1, 0.2, 0.3]

    async def generate_image_url(self, prompt: str) -> Optional[str]:
        return self.image_url


class FakeVectorStore:
    """Stands in for PineconeService; every query returns ``matches``."""

    def __init__(self, matches: Optional[List[VectorMatch]] = None, configured: bool = True) -> None:
        self.matches = list(matches or [])
        self.configured = configured
        self.queries = 0
        self.top_ks: List[Optional[int]] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def query(self, vector, top_k: Optional[int] = None) -> List[VectorMatch]:
        self.queries += 1
        self.top_ks.append(top_k)
        return self.matches[: top_k or 10]


class FakeImages:
    """Stands in for GeminiImageService; returns a small PNG for every prompt."""

    def __init__(self, configured: bool = True, payload: Optional[str] = None) -> None:
        self.configured = configured
        self.payload = payload if payload is not None else make_png_base64()
        self.prompts: List[str] = []
        self.video_description: Optional[str] = "Scene 1: a wide shot of the city at dawn."

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def generate_image(self, prompt: str) -> Optional[GeneratedImage]:
        self.prompts.append(prompt)
        if not self.configured or not self.payload:
            return None
        return GeneratedImage(base64=self.payload, mime_type="image/png")

    async def describe_video(self, prompt: str) -> Optional[str]:
        return self.video_description if self.configured else None


_REAL_ASYNC_CLIENT = httpx.AsyncClient


def mock_http(monkeypatch, handler) -> List[httpx.Request]:
    """
    Route every ``httpx.AsyncClient`` the services open through *handler*.
    Returns the list that collects the requests sent.
    """
    sent: List[httpx.Request] = []

    def _record(request: httpx.Request) -> httpx.Response:
        sent.append(request)
        return handler(request)

    def _client(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(_record)
        return _REAL_ASYNC_CLIENT(*args, **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", _client)
    return sent


def knowledge_matches() -> List[VectorMatch]:
    return [
        VectorMatch(id="doc-1", score=0.91, metadata={"title": "Market Report", "text": "Growth was 12%."}),
        VectorMatch(id="doc-2", score=0.72, metadata={"text": "Competitors doubled spend."}),
        VectorMatch(id="doc-3", score=0.85, metadata={"title": "SWOT Notes", "text": "Strengths: brand."}),
    ]


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def no_image_delay(monkeypatch):
    """Skip the pause between image requests."""
    monkeypatch.setattr(settings, "IMAGE_REQUEST_DELAY", 0)


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def fake_vector_store() -> FakeVectorStore:
    return FakeVectorStore(knowledge_matches())


@pytest.fixture
def fake_images() -> FakeImages:
    return FakeImages()


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a DB session for each test. After the test, all tables are dropped
    so each test starts with a clean slate.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        from app.models import database_models  # noqa: F401

        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    fake_llm: FakeLLM,
    fake_vector_store: FakeVectorStore,
    fake_images: FakeImages,
) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app with the DB and external
    service dependencies overridden.
    """

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_llm_service] = lambda: fake_llm
    app.dependency_overrides[get_vector_store] = lambda: fake_vector_store
    app.dependency_overrides[get_image_service] = lambda: fake_images

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

AUTH_HEADERS = {"X-User-Id": "test-user-1"}

AUTH_HEADERS_USER2 = {"X-User-Id": "test-user-2"}
