"""Tests for POST /api/media/generate."""
import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_image_from_gemini(client: AsyncClient, fake_images):
    resp = await client.post("/api/media/generate", json={"prompt": "A lighthouse"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["model"] == "google"
    assert data["type"] == "image"
    assert data["url"].startswith("data:image/png;base64,")
    assert fake_images.prompts == ["A lighthouse"]


@pytest.mark.asyncio
async def test_image_falls_back_to_openai(client: AsyncClient, fake_images):
    fake_images.payload = ""
    resp = await client.post("/api/media/generate", json={"prompt": "A lighthouse", "type": "image"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["model"] == "openai"
    assert data["url"] == "https://images.example.com/generated.png"


@pytest.mark.asyncio
async def test_image_uses_openai_without_google_key(client: AsyncClient, fake_images):
    fake_images.configured = False
    resp = await client.post("/api/media/generate", json={"prompt": "A lighthouse"})
    assert resp.json()["model"] == "openai"
    assert fake_images.prompts == []


@pytest.mark.asyncio
async def test_video_description(client: AsyncClient):
    resp = await client.post("/api/media/generate", json={"prompt": "A city", "type": "video"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["type"] == "video"
    assert data["content"].startswith("Scene 1")
    assert "video description" in data["note"]
    assert "url" not in data


@pytest.mark.asyncio
async def test_video_without_google_is_400(client: AsyncClient, fake_images):
    fake_images.configured = False
    resp = await client.post("/api/media/generate", json={"prompt": "A city", "type": "video"})
    assert resp.status_code == 400
    assert "Google Gemini" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_no_keys_is_500(client: AsyncClient, fake_images, fake_llm):
    fake_images.configured = False
    fake_llm.configured = False
    resp = await client.post("/api/media/generate", json={"prompt": "A lighthouse"})
    assert resp.status_code == 500
    assert resp.json()["detail"].startswith("No API keys available")


@pytest.mark.asyncio
async def test_missing_prompt_is_400(client: AsyncClient):
    resp = await client.post("/api/media/generate", json={"type": "image"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Prompt is required"


@pytest.mark.asyncio
async def test_unknown_type_is_422(client: AsyncClient):
    resp = await client.post("/api/media/generate", json={"prompt": "x", "type": "audio"})
    assert resp.status_code == 422
