from __future__ import annotations

"""Immutable TF-IDF index over a passage set and its query scorer."""

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from blogqa.rag.tokenizer import tokenize
from blogqa.rag.types import Passage, ScoredResult


@dataclass(frozen=True)
class PassageStats:
    """Term statistics for a single passage."""
    passage: Passage
    term_counts: dict[str, int]
    length: int


@dataclass(frozen=True)
class TfIdfIndex:
    """Term and document frequencies for one snapshot of the passage set.

    The index is never mutated after ``build_index`` returns; a changed
    document set requires building a new one.
    """
    entries: tuple[PassageStats, ...] = ()
    document_frequency: dict[str, int] = field(default_factory=dict)

    @property
    def corpus_size(self) -> int:
        """Passage count used by the idf formula, floored at 1."""
        return len(self.entries) or 1

    def idf(self, term: str) -> float:
        """Smoothed inverse document frequency; unseen terms have df 0."""
        df = self.document_frequency.get(term, 0)
        return math.log((self.corpus_size + 1) / (df + 1)) + 1

    def passages(self) -> list[Passage]:
        return [entry.passage for entry in self.entries]

    def stats(self) -> dict[str, int | str]:
        """Return basic stats for the index."""
        return {
            "backend": "tfidf",
            "passage_count": len(self.entries),
            "vocabulary_size": len(self.document_frequency),
        }

    def health(self) -> dict[str, str | bool]:
        return {"backend": "tfidf", "ok": True}


def build_index(passages: Iterable[Passage]) -> TfIdfIndex:
    """Build term statistics for every passage in a single pass."""
    entries: list[PassageStats] = []
    document_frequency: Counter[str] = Counter()
    for passage in passages:
        terms = tokenize(passage.text)
        counts = Counter(terms)
        entries.append(
            PassageStats(
                passage=passage,
                term_counts=dict(counts),
                length=len(terms) or 1,
            )
        )
        document_frequency.update(counts.keys())
    return TfIdfIndex(entries=tuple(entries), document_frequency=dict(document_frequency))


def query_weights(query: str, index: TfIdfIndex) -> dict[str, float]:
    """Weight each distinct query term by normalized query tf times idf."""
    terms = tokenize(query)
    query_length = len(terms) or 1
    counts = Counter(terms)
    return {term: (count / query_length) * index.idf(term) for term, count in counts.items()}


def score(query: str, index: TfIdfIndex) -> list[ScoredResult]:
    """Rank all passages by unnormalized TF-IDF dot product.

    Ties keep passage-set order because the sort is stable. Passages sharing
    no term with the query score 0; an empty query scores everything 0.
    """
    if not index.entries:
        return []
    weights = query_weights(query, index)
    idfs = {term: index.idf(term) for term in weights}
    results: list[ScoredResult] = []
    for entry in index.entries:
        total = 0.0
        for term, weight in weights.items():
            tf = entry.term_counts.get(term, 0) / entry.length
            total += weight * tf * idfs[term]
        results.append(
            ScoredResult(
                passage_id=entry.passage.passage_id,
                score=total,
                meta=entry.passage.meta,
            )
        )
    results.sort(key=lambda result: result.score, reverse=True)
    return results
