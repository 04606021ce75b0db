from __future__ import annotations

import logging
from functools import lru_cache

from blogqa.app.settings import settings
from blogqa.rag.answerer import ExtractiveAnswerer
from blogqa.rag.llm import Generator, LLMError, build_generator
from blogqa.rag.pipeline import QAPipeline
from blogqa.store.documents import DocumentStore, FeedList

logger = logging.getLogger(__name__)


@lru_cache
def get_document_store() -> DocumentStore:
    return DocumentStore()


@lru_cache
def get_feed_list() -> FeedList:
    return FeedList()


@lru_cache
def get_pipeline() -> QAPipeline:
    generator, fallback_reason = build_configured_generator()
    return QAPipeline(
        store=get_document_store(),
        answerer=ExtractiveAnswerer(
            max_passages=settings.fallback_max_passages,
            max_sentences=settings.fallback_max_sentences,
        ),
        generator=generator,
        fallback_reason=fallback_reason,
        chunk_max_len=settings.chunk_max_len,
        chunk_overlap=settings.chunk_overlap,
        top_k=settings.top_k,
        max_contexts=settings.max_contexts,
        item_max_chars=settings.context_item_max_chars,
        total_max_size=settings.context_max_size,
    )


def reset_caches() -> None:
    get_pipeline.cache_clear()
    get_document_store.cache_clear()
    get_feed_list.cache_clear()


def build_configured_generator() -> tuple[Generator | None, str]:
    """Build the configured generator, or None with the reason it is skipped."""
    if settings.answerer_mode != "llm":
        return None, "bypassed"
    try:
        return build_llm_generator(), "generation_failed"
    except LLMError as exc:
        logger.warning("llm_unavailable", extra={"detail": str(exc)})
        return None, "llm_unavailable"


def build_llm_generator() -> Generator:
    return build_generator(
        settings.llm_provider,
        api_key_openai=settings.openai_api_key,
        openai_base_url=settings.openai_base_url,
        openai_model=settings.openai_chat_model,
        ollama_base_url=settings.ollama_base_url,
        ollama_model=settings.ollama_model,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
        timeout=settings.llm_timeout,
        item_max_chars=settings.context_item_max_chars,
        total_max_size=settings.context_max_size,
    )
