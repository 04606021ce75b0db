from __future__ import annotations

import os

import httpx
import pytest

from blogqa.app import main
from blogqa.app.dependencies import reset_caches
from blogqa.app.main import app
from blogqa.loaders.feed import FeedFetchError, FeedItem
from blogqa.rag.llm import GenerationResult, limit_contexts

pytestmark = pytest.mark.anyio


def get_client() -> httpx.AsyncClient:
    reset_caches()
    transport = httpx.ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


class EchoGenerator:
    async def generate(self, question, contexts) -> GenerationResult:
        used = limit_contexts(contexts)
        return GenerationResult(answer=f"answer to {question}", used=used)


async def test_health_endpoint() -> None:
    async with get_client() as client:
        response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["x-request-id"]


async def test_add_document_and_ask() -> None:
    async with get_client() as client:
        add_response = await client.post(
            "/documents",
            json={
                "title": "입덧",
                "url": "https://blog.example/nausea",
                "content": "임신 중 입덧은 보통 20주 이전에 완화됩니다.",
            },
        )
        assert add_response.status_code == 200
        doc_id = add_response.json()["id"]

        ask_response = await client.post("/ask", json={"question": "입덧 20주"})
        stats_response = await client.get("/stats")
        listing = await client.get("/documents")

    assert ask_response.status_code == 200
    payload = ask_response.json()
    assert payload["mode"] == "extracted"
    assert payload["reason"] == "bypassed"
    assert payload["links"][0]["url"] == "https://blog.example/nausea"
    assert "20주" in payload["answer"]
    assert payload["request_id"]
    assert stats_response.json()["document_count"] == 1
    assert stats_response.json()["passage_count"] == 1
    assert listing.json()[0]["id"] == doc_id


async def test_blank_question_rejected() -> None:
    async with get_client() as client:
        response = await client.post("/ask", json={"question": "   "})
    assert response.status_code == 400


async def test_unrelated_question_refused() -> None:
    async with get_client() as client:
        response = await client.post("/ask", json={"question": "anything"})
    assert response.status_code == 200
    assert response.json()["reason"] == "no_context"
    assert response.json()["contexts"] == []


async def test_import_export_and_delete() -> None:
    records = [
        {"id": "a", "title": "A", "url": "https://blog.example/a", "content": "Alpha."},
        {"title": "", "content": "Beta."},
    ]
    async with get_client() as client:
        import_response = await client.post("/documents/import", json=records)
        bad_import = await client.post("/documents/import", json={"id": "x"})
        export_response = await client.get("/documents/export")
        delete_response = await client.delete("/documents/a")
        missing_response = await client.delete("/documents/a")

    assert import_response.json() == {"added": 2, "titles": ["A", "제목 없음"]}
    assert bad_import.status_code == 400
    assert [record["title"] for record in export_response.json()] == ["A", "제목 없음"]
    assert delete_response.json() == {"deleted": "a"}
    assert missing_response.status_code == 404


async def test_saved_feeds() -> None:
    async with get_client() as client:
        await client.post("/feeds", json={"url": "https://blog.example/rss"})
        saved = await client.get("/feeds")
        removed = await client.delete("/feeds/0")
        missing = await client.delete("/feeds/5")

    assert saved.json() == {"urls": ["https://blog.example/rss"]}
    assert removed.json() == {"urls": []}
    assert missing.status_code == 404


async def test_feed_import_adds_documents(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_fetch(url, **kwargs):
        return [
            FeedItem(title="수면", link="https://blog.example/sleep", content="<p>옆으로 누워 주무세요.</p>", pub_date=""),
        ]

    monkeypatch.setattr(main, "fetch_feed", fake_fetch)
    async with get_client() as client:
        response = await client.post("/feeds/import", json={"url": "https://blog.example/rss"})
        export_response = await client.get("/documents/export")

    assert response.json() == {"added": 1, "titles": ["수면"]}
    assert export_response.json()[0]["content"] == "옆으로 누워 주무세요."


async def test_feed_import_failure_returns_502(monkeypatch: pytest.MonkeyPatch) -> None:
    async def failing_fetch(url, **kwargs):
        raise FeedFetchError("Fetch failed 500")

    monkeypatch.setattr(main, "fetch_feed", failing_fetch)
    async with get_client() as client:
        response = await client.post("/feeds/import", json={"url": "https://blog.example/rss"})
        rss_response = await client.get("/api/rss", params={"url": "https://blog.example/rss"})

    assert response.status_code == 502
    assert rss_response.status_code == 502
    assert rss_response.json() == {"error": "Fetch failed 500"}


async def test_feed_service_returns_items(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_fetch(url, **kwargs):
        return [FeedItem(title="T", link="https://blog.example/t", content="c", pub_date="d")]

    monkeypatch.setattr(main, "fetch_feed", fake_fetch)
    async with get_client() as client:
        response = await client.get("/api/rss", params={"url": "https://blog.example/rss"})
        missing = await client.get("/api/rss")

    assert response.status_code == 200
    assert response.json() == {
        "items": [{"title": "T", "link": "https://blog.example/t", "content": "c", "pubDate": "d"}]
    }
    assert response.headers["cache-control"] == "s-maxage=300, stale-while-revalidate"
    assert missing.status_code == 400
    assert missing.json() == {"error": "Missing ?url="}


async def test_generation_service_contract(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(main, "build_llm_generator", lambda: EchoGenerator())
    async with get_client() as client:
        response = await client.post(
            "/api/ask",
            json={"question": "q", "contexts": [{"text": "x" * 2000, "url": "u", "title": "t"}]},
        )
        wrong_method = await client.get("/api/ask")
        options_method = await client.options("/api/ask")
        head_method = await client.head("/api/ask")
        missing = await client.post("/api/ask", json={"question": "q"})
        not_json = await client.post("/api/ask", content=b"nope")

    assert response.status_code == 200
    assert response.headers["cache-control"] == "no-store"
    payload = response.json()
    assert payload["answer"] == "answer to q"
    assert len(payload["used"][0]["text"]) == 1500
    assert wrong_method.status_code == 405
    assert wrong_method.json() == {"error": "Use POST"}
    assert options_method.status_code == 405
    assert options_method.json() == {"error": "Use POST"}
    assert head_method.status_code == 405
    assert missing.status_code == 400
    assert missing.json() == {"error": "Missing {question, contexts[]}"}
    assert not_json.status_code == 400


async def test_generation_service_without_llm_config_returns_500() -> None:
    async with get_client() as client:
        response = await client.post("/api/ask", json={"question": "q", "contexts": []})
    assert response.status_code == 500
    assert "error" in response.json()


async def test_admin_key_required_for_mutations() -> None:
    original = os.environ.get("RAG_ADMIN_KEYS")
    os.environ["RAG_ADMIN_KEYS"] = "secret"
    try:
        async with get_client() as client:
            denied = await client.post("/documents", json={"content": "x"})
            allowed = await client.post(
                "/documents",
                json={"content": "x"},
                headers={"X-API-Key": "secret"},
            )
            bearer = await client.delete(
                f"/documents/{allowed.json()['id']}",
                headers={"Authorization": "Bearer secret"},
            )
            public = await client.post("/ask", json={"question": "x"})
    finally:
        if original is None:
            os.environ.pop("RAG_ADMIN_KEYS", None)
        else:
            os.environ["RAG_ADMIN_KEYS"] = original

    assert denied.status_code == 401
    assert allowed.status_code == 200
    assert bearer.status_code == 200
    assert public.status_code == 200


async def test_anonymous_admin_disabled_without_keys() -> None:
    original = os.environ.get("RAG_ALLOW_ANONYMOUS")
    os.environ["RAG_ALLOW_ANONYMOUS"] = "false"
    try:
        async with get_client() as client:
            response = await client.post("/feeds", json={"url": "https://blog.example/rss"})
    finally:
        if original is None:
            os.environ.pop("RAG_ALLOW_ANONYMOUS", None)
        else:
            os.environ["RAG_ALLOW_ANONYMOUS"] = original

    assert response.status_code == 401


async def test_metrics_endpoint() -> None:
    async with get_client() as client:
        await client.get("/health")
        response = await client.get("/metrics")
    assert response.status_code == 200
    assert "http_requests_total" in response.text
