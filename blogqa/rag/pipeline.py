from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Literal, Union

from blogqa.index.tfidf import TfIdfIndex, build_index, score
from blogqa.loaders.chunking import DEFAULT_MAX_LEN, DEFAULT_OVERLAP, build_passages
from blogqa.rag.answerer import ExtractiveAnswerer
from blogqa.rag.budget import DEFAULT_ITEM_MAX_CHARS, DEFAULT_TOTAL_MAX_SIZE, select_contexts
from blogqa.rag.citations import Link, append_links_footer, build_links
from blogqa.rag.guardrails import DEFAULT_REFUSAL, relevant_results, require_context
from blogqa.rag.llm import Generator, LLMError
from blogqa.rag.types import ContextItem, Document, Passage, ScoredResult
from blogqa.store.documents import DocumentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedAnswer:
    """Answer written by the generation service."""
    answer: str
    contexts: list[ContextItem]
    links: list[Link]
    mode: Literal["generated"] = "generated"


@dataclass(frozen=True)
class ExtractedAnswer:
    """Locally extracted answer used when generation is skipped or fails."""
    answer: str
    reason: str
    sentences: list[str]
    contexts: list[ContextItem]
    links: list[Link]
    mode: Literal["extracted"] = "extracted"


AnswerOutcome = Union[GeneratedAnswer, ExtractedAnswer]


@dataclass(frozen=True)
class IndexSnapshot:
    """Passages and index derived from one document set."""
    documents: tuple[Document, ...]
    passages: dict[str, Passage]
    index: TfIdfIndex


@dataclass
class QAPipeline:
    store: DocumentStore
    answerer: ExtractiveAnswerer = field(default_factory=ExtractiveAnswerer)
    generator: Generator | None = None
    fallback_reason: str = "bypassed"
    chunk_max_len: int = DEFAULT_MAX_LEN
    chunk_overlap: int = DEFAULT_OVERLAP
    top_k: int = 8
    max_contexts: int = 6
    item_max_chars: int = DEFAULT_ITEM_MAX_CHARS
    total_max_size: int = DEFAULT_TOTAL_MAX_SIZE
    _snapshot: IndexSnapshot | None = field(default=None, init=False, repr=False)

    def snapshot(self) -> IndexSnapshot:
        """Return the index for the current document set, rebuilding if it changed."""
        documents = self.store.documents
        if self._snapshot is not None and self._snapshot.documents is documents:
            return self._snapshot
        passages = build_passages(documents, self.chunk_max_len, self.chunk_overlap)
        self._snapshot = IndexSnapshot(
            documents=documents,
            passages={passage.passage_id: passage for passage in passages},
            index=build_index(passages),
        )
        logger.info(
            "index_rebuilt",
            extra={"documents": len(documents), "passages": len(passages)},
        )
        return self._snapshot

    def retrieve(self, query: str, top_k: int | None = None) -> list[ScoredResult]:
        results = score(query, self.snapshot().index)[: top_k or self.top_k]
        logger.info(
            "retrieval_complete",
            extra={
                "results": len(results),
                "query_length": len(query),
            },
        )
        return results

    def build_contexts(self, ranked: list[ScoredResult], limit: int | None = None) -> list[ContextItem]:
        return select_contexts(
            ranked,
            self.snapshot().passages,
            item_max_chars=self.item_max_chars,
            total_max_size=self.total_max_size,
            max_count=limit or self.max_contexts,
        )

    async def answer(self, question: str) -> AnswerOutcome:
        """Answer from the corpus, falling back to extracted sentences."""
        query = question.strip() if isinstance(question, str) else ""
        query_hash = hashlib.sha256(query.encode("utf-8")).hexdigest()
        ranked = relevant_results(self.retrieve(query))
        contexts = self.build_contexts(ranked)
        guardrail = require_context(contexts)
        if not guardrail.allowed:
            logger.info("answer_refused", extra={"query_hash": query_hash, "reason": guardrail.reason})
            return ExtractedAnswer(
                answer=DEFAULT_REFUSAL,
                reason=guardrail.reason,
                sentences=[],
                contexts=[],
                links=[],
            )
        links = build_links(contexts)
        reason = self.fallback_reason
        if self.generator is not None:
            try:
                result = await self.generator.generate(query, contexts)
            except LLMError as exc:
                logger.error(
                    "generation_failed",
                    extra={"query_hash": query_hash, "detail": type(exc).__name__},
                )
                reason = "generation_failed"
            else:
                logger.info(
                    "answer_generated",
                    extra={"query_hash": query_hash, "contexts": len(result.used)},
                )
                return GeneratedAnswer(
                    answer=append_links_footer(result.answer, links),
                    contexts=contexts,
                    links=links,
                )
        text, sentences = self.answerer.generate(query, [item.text for item in contexts])
        logger.info(
            "answer_fallback_used",
            extra={"query_hash": query_hash, "reason": reason, "sentences": len(sentences)},
        )
        return ExtractedAnswer(
            answer=append_links_footer(text or DEFAULT_REFUSAL, links),
            reason=reason,
            sentences=sentences,
            contexts=contexts,
            links=links,
        )
