from __future__ import annotations

"""Core data types for documents, passages and retrieval results."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Document:
    """Operator-curated source document."""
    doc_id: str
    title: str
    url: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.doc_id, "title": self.title, "url": self.url, "content": self.content}


@dataclass(frozen=True)
class PassageMeta:
    """Provenance of a passage within its document."""
    title: str
    url: str
    document_id: str
    chunk_index: int


@dataclass(frozen=True)
class Passage:
    """Bounded-length excerpt of a document, the unit of retrieval."""
    passage_id: str
    text: str
    meta: PassageMeta


@dataclass(frozen=True)
class ScoredResult:
    """Relevance score of one passage for one query."""
    passage_id: str
    score: float
    meta: PassageMeta


@dataclass(frozen=True)
class ContextItem:
    """Passage excerpt forwarded to answer generation."""
    text: str
    url: str
    title: str

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "url": self.url, "title": self.title}
