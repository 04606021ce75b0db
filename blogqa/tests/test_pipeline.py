from __future__ import annotations

import httpx
import pytest

from blogqa.rag.guardrails import DEFAULT_REFUSAL
from blogqa.rag.llm import GenerationResult, LLMError, OpenAIGenerator
from blogqa.rag.pipeline import ExtractedAnswer, GeneratedAnswer, QAPipeline
from blogqa.rag.types import ContextItem
from blogqa.store.documents import DocumentStore

pytestmark = pytest.mark.anyio


class FakeGenerator:
    def __init__(self) -> None:
        self.calls: list[tuple[str, list[ContextItem]]] = []

    async def generate(self, question: str, contexts: list[ContextItem]) -> GenerationResult:
        self.calls.append((question, contexts))
        return GenerationResult(answer="생성된 답변", used=contexts)


class FailingGenerator:
    async def generate(self, question: str, contexts: list[ContextItem]) -> GenerationResult:
        raise LLMError("upstream down")


def build_pipeline(**kwargs) -> QAPipeline:
    store = DocumentStore()
    store.add("두통", "https://blog.example/headache", "두통이 심하면 병원에 가세요.")
    store.add("입덧", "https://blog.example/nausea", "임신 중 입덧은 보통 20주 이전에 완화됩니다.")
    return QAPipeline(store=store, **kwargs)


async def test_generated_answer_carries_links_footer() -> None:
    generator = FakeGenerator()
    pipeline = build_pipeline(generator=generator, fallback_reason="generation_failed")

    outcome = await pipeline.answer("  입덧 20주  ")

    assert isinstance(outcome, GeneratedAnswer)
    assert outcome.answer.startswith("생성된 답변")
    assert "1. 입덧 - https://blog.example/nausea" in outcome.answer
    assert generator.calls[0][0] == "입덧 20주"
    assert [item.url for item in outcome.contexts] == ["https://blog.example/nausea"]


async def test_generation_failure_falls_back_to_extraction() -> None:
    pipeline = build_pipeline(generator=FailingGenerator(), fallback_reason="generation_failed")

    outcome = await pipeline.answer("입덧 20주")

    assert isinstance(outcome, ExtractedAnswer)
    assert outcome.reason == "generation_failed"
    assert outcome.sentences == ["임신 중 입덧은 보통 20주 이전에 완화됩니다."]
    assert "https://blog.example/nausea" in outcome.answer


async def test_no_generator_is_bypassed() -> None:
    pipeline = build_pipeline()

    outcome = await pipeline.answer("두통이 심하면")

    assert isinstance(outcome, ExtractedAnswer)
    assert outcome.reason == "bypassed"
    assert outcome.links[0].url == "https://blog.example/headache"


async def test_unrelated_question_is_refused_without_generation() -> None:
    generator = FakeGenerator()
    pipeline = build_pipeline(generator=generator)

    outcome = await pipeline.answer("quantum physics")

    assert isinstance(outcome, ExtractedAnswer)
    assert outcome.answer == DEFAULT_REFUSAL
    assert outcome.reason == "no_context"
    assert outcome.contexts == []
    assert generator.calls == []


async def test_empty_store_is_refused() -> None:
    pipeline = QAPipeline(store=DocumentStore())

    outcome = await pipeline.answer("입덧")

    assert outcome.reason == "no_context"


async def test_index_rebuilds_when_documents_change() -> None:
    pipeline = build_pipeline()
    first = pipeline.snapshot()
    assert pipeline.snapshot() is first

    pipeline.store.add("수면", "https://blog.example/sleep", "옆으로 누워 주무세요.")
    second = pipeline.snapshot()

    assert second is not first
    assert len(second.passages) == 3
    outcome = await pipeline.answer("주무세요")
    assert outcome.links[0].url == "https://blog.example/sleep"


async def test_max_contexts_caps_selection() -> None:
    store = DocumentStore()
    for idx in range(10):
        store.add(f"Post {idx}", f"https://blog.example/{idx}", f"Shared topic number {idx}.")
    pipeline = QAPipeline(store=store, max_contexts=6)

    outcome = await pipeline.answer("shared topic")

    assert len(outcome.contexts) == 6
    assert len(outcome.links) == 6


async def test_colliding_imported_ids_resolve_to_their_own_documents() -> None:
    store = DocumentStore()
    store.import_documents([{"id": "x", "title": "A", "url": "https://a", "content": "apple pie recipe."}])
    store.import_documents([{"id": "x", "title": "B", "url": "https://b", "content": "banana bread."}])
    pipeline = QAPipeline(store=store)

    banana = await pipeline.answer("banana")
    apple = await pipeline.answer("apple")

    assert [item.url for item in banana.contexts] == ["https://b"]
    assert [item.url for item in apple.contexts] == ["https://a"]


async def test_malformed_provider_body_falls_back() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": [None]})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        generator = OpenAIGenerator(
            api_key="sk-test",
            base_url="http://llm.test/v1",
            model="gpt-4o-mini",
            temperature=0.2,
            max_tokens=100,
            timeout=5,
            client=client,
        )
        pipeline = build_pipeline(generator=generator, fallback_reason="generation_failed")
        outcome = await pipeline.answer("입덧 20주")

    assert isinstance(outcome, ExtractedAnswer)
    assert outcome.reason == "generation_failed"
    assert outcome.sentences == ["임신 중 입덧은 보통 20주 이전에 완화됩니다."]
