"""Tests for POST /api/whitepaper/generate and the whitepaper history endpoints."""
import base64

import pytest
from httpx import AsyncClient

from app.config import settings
from app.errors import LLMServiceError
from tests.conftest import AUTH_HEADERS, AUTH_HEADERS_USER2, make_paragraph, make_whitepaper

# 6 paragraphs x 80 words clears the 400-word minimum of a one-page request
ONE_PAGE = make_whitepaper(sections=2, paragraphs=2, words=80)


async def _generate(client: AsyncClient, fake_llm, headers=None, **overrides):
    fake_llm.responses = [ONE_PAGE]
    body = {"prompt": "Edge computing adoption", "numPages": 1}
    body.update(overrides)
    return await client.post("/api/whitepaper/generate", json=body, headers=headers or {})


# ═══════════════════════════════════════════════════════════════════════════════
# GENERATION
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.asyncio
async def test_generate_pdf_with_context_and_images(
    client: AsyncClient, fake_llm, fake_vector_store, fake_images
):
    fake_llm.responses = ["**" + ONE_PAGE + "**"]
    resp = await client.post(
        "/api/whitepaper/generate",
        json={
            "prompt": "Edge computing adoption",
            "outputFormat": "pdf",
            "numPages": 1,
            "frameworks": ["swot"],
            "imageFrequency": "1 image per 1 page",
        },
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert isinstance(data["id"], int)
    assert data["mimeType"] == "application/pdf"
    assert data["filename"].startswith("whitepaper-")
    assert data["filename"].endswith(".pdf")
    assert base64.b64decode(data["document"]).startswith(b"%PDF")
    assert "**" not in data["content"]
    assert data["numPages"] == 1
    assert data["writingStyle"] == "professional"
    assert data["frameworks"] == ["swot"]
    assert data["imageFrequency"] == "1 image per 1 page"
    assert data["imagesGenerated"] == 1
    assert data["wordCount"] > 400
    assert data["pagesRendered"] >= 1

    # Prompt embedding plus one framework query
    assert fake_vector_store.queries == 2
    assert len(fake_images.prompts) == 1

    call = fake_llm.calls[0]
    assert call["preserve_system_message"] is True
    assert call["temperature"] == 0.5
    assert call["max_tokens"] == 4000
    assert [m["role"] for m in call["messages"]] == ["system", "user"]

    user_message = call["messages"][1]["content"]
    assert "[Market Report]: Growth was 12%." in user_message
    assert "[Document]: Competitors doubled spend." in user_message
    assert user_message.index("[Market Report]") < user_message.index("[SWOT Notes]")
    assert user_message.index("[SWOT Notes]") < user_message.index("[Document]")
    assert "--- Swot Framework Content ---" in user_message


@pytest.mark.asyncio
async def test_short_answer_triggers_continuation(client: AsyncClient, fake_llm):
    short = make_whitepaper(sections=1, paragraphs=1, words=50)
    fake_llm.responses = [short, make_paragraph(300)]
    resp = await client.post(
        "/api/whitepaper/generate",
        json={"prompt": "Edge computing", "numPages": 1, "outputFormat": "txt"},
    )
    assert resp.status_code == 200
    assert len(fake_llm.calls) == 2

    continuation = fake_llm.calls[1]
    assert [m["role"] for m in continuation["messages"]] == ["system", "user", "assistant", "user"]
    assert continuation["messages"][2]["content"] == short
    assert "Continue the whitepaper immediately" in continuation["messages"][3]["content"]
    assert resp.json()["wordCount"] >= 400


@pytest.mark.asyncio
async def test_empty_continuation_stops_the_loop(client: AsyncClient, fake_llm):
    fake_llm.responses = [make_whitepaper(sections=1, paragraphs=1, words=50), ""]
    resp = await client.post(
        "/api/whitepaper/generate",
        json={"prompt": "Edge computing", "numPages": 1, "outputFormat": "txt"},
    )
    assert resp.status_code == 200
    assert len(fake_llm.calls) == 2


@pytest.mark.asyncio
async def test_num_pages_is_clamped(client: AsyncClient, fake_llm):
    fake_llm.responses = [ONE_PAGE]
    resp = await client.post(
        "/api/whitepaper/generate",
        json={"prompt": "Edge computing", "numPages": 80, "outputFormat": "txt"},
    )
    assert resp.status_code == 200
    assert resp.json()["numPages"] == 50


@pytest.mark.asyncio
async def test_ppt_response_has_no_content(client: AsyncClient, fake_llm):
    resp = await _generate(client, fake_llm, outputFormat="ppt")
    assert resp.status_code == 200
    data = resp.json()
    assert "content" not in data
    assert data["mimeType"] == (
        "application/vnd.openxmlformats-officedocument.presentationml.presentation"
    )
    assert data["filename"].endswith(".pptx")


@pytest.mark.asyncio
async def test_docx_export(client: AsyncClient, fake_llm):
    resp = await _generate(client, fake_llm, outputFormat="docx")
    assert resp.status_code == 200
    data = resp.json()
    assert data["filename"].endswith(".docx")
    assert base64.b64decode(data["document"])[:2] == b"PK"


@pytest.mark.asyncio
async def test_txt_export_returns_the_text(client: AsyncClient, fake_llm):
    resp = await _generate(client, fake_llm, outputFormat="txt")
    data = resp.json()
    assert data["mimeType"] == "text/plain"
    assert base64.b64decode(data["document"]).decode("utf-8") == data["content"]


@pytest.mark.asyncio
async def test_generation_without_knowledge_base(client: AsyncClient, fake_llm, fake_vector_store):
    fake_vector_store.configured = False
    resp = await _generate(client, fake_llm, outputFormat="txt")
    assert resp.status_code == 200
    assert fake_vector_store.queries == 0
    assert "GENERAL KNOWLEDGE BASE CONTEXT" not in fake_llm.calls[0]["messages"][1]["content"]


@pytest.mark.asyncio
async def test_knowledge_queries_use_configured_top_k(
    client: AsyncClient, fake_llm, fake_vector_store, monkeypatch
):
    monkeypatch.setattr(settings, "PINECONE_TOP_K", 2)
    resp = await _generate(client, fake_llm, outputFormat="txt", frameworks=["swot"])
    assert resp.status_code == 200
    assert fake_vector_store.top_ks == [2, 2]
    # the third match (doc-3) is beyond top_k for every query
    user_message = fake_llm.calls[0]["messages"][1]["content"]
    assert "[Market Report]" in user_message
    assert "Strengths: brand." not in user_message


@pytest.mark.asyncio
async def test_unusable_images_are_skipped(client: AsyncClient, fake_llm, fake_images):
    fake_images.payload = "c2hvcnQ="
    resp = await _generate(client, fake_llm, imageFrequency="1 image per 1 page")
    assert resp.status_code == 200
    assert resp.json()["imagesGenerated"] == 0


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{}, {"prompt": "   "}])
async def test_missing_prompt_is_400(client: AsyncClient, body):
    resp = await client.post("/api/whitepaper/generate", json=body)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Prompt is required"
    assert resp.json()["error"] == "Prompt is required"


@pytest.mark.asyncio
async def test_malformed_json_is_400(client: AsyncClient):
    resp = await client.post(
        "/api/whitepaper/generate",
        content=b'{"prompt": "unterminated',
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid JSON in request body"}


@pytest.mark.asyncio
async def test_unknown_output_format_is_422(client: AsyncClient):
    resp = await client.post(
        "/api/whitepaper/generate", json={"prompt": "x", "outputFormat": "xls"}
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"imageFrequency": "1 image per 2 pages " + "x" * 200},
        {"writingStyle": "professional" * 10},
    ],
)
async def test_oversized_fields_rejected_before_generation(
    client: AsyncClient, fake_llm, fake_images, overrides
):
    body = {"prompt": "Edge computing", **overrides}
    resp = await client.post("/api/whitepaper/generate", json=body)
    assert resp.status_code == 422
    assert fake_llm.calls == []
    assert fake_images.prompts == []


@pytest.mark.asyncio
async def test_oversized_user_id_rejected(client: AsyncClient, fake_llm):
    resp = await client.post(
        "/api/whitepaper/generate",
        json={"prompt": "Edge computing"},
        headers={"X-User-Id": "u" * 300},
    )
    assert resp.status_code == 422
    assert fake_llm.calls == []


@pytest.mark.asyncio
async def test_empty_answer_is_500(client: AsyncClient, fake_llm):
    fake_llm.responses = ["   "]
    resp = await client.post("/api/whitepaper/generate", json={"prompt": "Edge computing"})
    assert resp.status_code == 500
    data = resp.json()
    assert data["error"].startswith("Failed to generate whitepaper content")
    assert "rate limits" in data["hint"]


@pytest.mark.asyncio
async def test_llm_failure_is_500(client: AsyncClient, fake_llm):
    fake_llm.fail_with = LLMServiceError("upstream exploded")
    resp = await client.post("/api/whitepaper/generate", json={"prompt": "Edge computing"})
    assert resp.status_code == 500
    data = resp.json()
    assert data["error"] == "Failed to generate whitepaper content"
    assert data["details"] == "upstream exploded"


@pytest.mark.asyncio
async def test_missing_api_key_is_described(client: AsyncClient, fake_llm):
    fake_llm.configured = False
    resp = await client.post("/api/whitepaper/generate", json={"prompt": "Edge computing"})
    assert resp.status_code == 500
    data = resp.json()
    assert data["error"] == "Failed to generate whitepaper"
    assert data["message"] == "OpenAI API key is invalid or missing"
    assert "OPENAI_API_KEY" in data["details"]


# ═══════════════════════════════════════════════════════════════════════════════
# HISTORY
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.asyncio
async def test_history_is_scoped_to_the_caller(client: AsyncClient, fake_llm):
    await _generate(client, fake_llm, headers=AUTH_HEADERS, outputFormat="txt")
    await _generate(client, fake_llm, headers=AUTH_HEADERS, outputFormat="docx")
    await _generate(client, fake_llm, headers=AUTH_HEADERS_USER2, outputFormat="txt")

    resp = await client.get("/api/whitepapers", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    items = resp.json()
    assert len(items) == 2
    assert {i["outputFormat"] for i in items} == {"txt", "docx"}
    assert "document" not in items[0]
    assert "content" not in items[0]
    assert items[0]["prompt"] == "Edge computing adoption"

    resp2 = await client.get("/api/whitepapers", headers=AUTH_HEADERS_USER2)
    assert len(resp2.json()) == 1

    anonymous = await client.get("/api/whitepapers")
    assert anonymous.json() == []


@pytest.mark.asyncio
async def test_get_and_download(client: AsyncClient, fake_llm):
    created = (await _generate(client, fake_llm, headers=AUTH_HEADERS)).json()

    resp = await client.get(f"/api/whitepapers/{created['id']}", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    detail = resp.json()
    assert detail["content"] == created["content"]
    assert detail["filename"] == created["filename"]

    download = await client.get(
        f"/api/whitepapers/{created['id']}/download", headers=AUTH_HEADERS
    )
    assert download.status_code == 200
    assert download.headers["content-type"] == "application/pdf"
    assert created["filename"] in download.headers["content-disposition"]
    assert download.content == base64.b64decode(created["document"])


@pytest.mark.asyncio
async def test_other_users_cannot_see_a_whitepaper(client: AsyncClient, fake_llm):
    created = (await _generate(client, fake_llm, headers=AUTH_HEADERS)).json()
    resp = await client.get(f"/api/whitepapers/{created['id']}", headers=AUTH_HEADERS_USER2)
    assert resp.status_code == 404
    resp = await client.delete(f"/api/whitepapers/{created['id']}", headers=AUTH_HEADERS_USER2)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_delete(client: AsyncClient, fake_llm):
    created = (await _generate(client, fake_llm, headers=AUTH_HEADERS)).json()

    resp = await client.delete(f"/api/whitepapers/{created['id']}", headers=AUTH_HEADERS)
    assert resp.status_code == 204

    resp = await client.get(f"/api/whitepapers/{created['id']}", headers=AUTH_HEADERS)
    assert resp.status_code == 404
