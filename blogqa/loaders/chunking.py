from __future__ import annotations

"""Sentence-aware passage chunking with character overlap."""

import re
from typing import Iterable

from blogqa.rag.segmentation import PASSAGE_SEGMENTER, SentenceSegmenter
from blogqa.rag.types import Document, Passage, PassageMeta

DEFAULT_MAX_LEN = 420
DEFAULT_OVERLAP = 60

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: object) -> str:
    """Collapse whitespace runs to single spaces; non-strings become empty."""
    if not isinstance(text, str):
        return ""
    return _WHITESPACE_RE.sub(" ", text)


def chunk_text(
    text: object,
    max_len: int = DEFAULT_MAX_LEN,
    overlap: int = DEFAULT_OVERLAP,
    segmenter: SentenceSegmenter = PASSAGE_SEGMENTER,
) -> list[str]:
    """Split text into overlapping passages of roughly ``max_len`` characters.

    Segments are accumulated until the next one would push the buffer past
    ``max_len``; the buffer is then emitted and the next buffer starts with
    its trailing ``overlap`` characters. A single segment longer than
    ``max_len`` is emitted whole.
    """
    cleaned = normalize_text(text)
    if not cleaned.strip():
        return []
    chunks: list[str] = []
    buffer = ""
    for segment in segmenter.split(cleaned):
        if len(buffer) + len(segment) > max_len:
            flushed = buffer.strip()
            if flushed:
                chunks.append(flushed)
            tail = buffer[max(0, len(buffer) - overlap):] if overlap > 0 else ""
            buffer = tail + segment
        else:
            buffer += segment
    remainder = buffer.strip()
    if remainder:
        chunks.append(remainder)
    return chunks


def chunk_document(
    document: Document,
    max_len: int = DEFAULT_MAX_LEN,
    overlap: int = DEFAULT_OVERLAP,
    segmenter: SentenceSegmenter = PASSAGE_SEGMENTER,
) -> list[Passage]:
    """Chunk a document into passages carrying title/url provenance."""
    passages: list[Passage] = []
    for idx, chunk in enumerate(chunk_text(document.content, max_len, overlap, segmenter)):
        passages.append(
            Passage(
                passage_id=f"{document.doc_id}::{idx}",
                text=chunk,
                meta=PassageMeta(
                    title=document.title,
                    url=document.url,
                    document_id=document.doc_id,
                    chunk_index=idx,
                ),
            )
        )
    return passages


def build_passages(
    documents: Iterable[Document],
    max_len: int = DEFAULT_MAX_LEN,
    overlap: int = DEFAULT_OVERLAP,
    segmenter: SentenceSegmenter = PASSAGE_SEGMENTER,
) -> list[Passage]:
    """Regenerate the full passage set for a document set, in document order."""
    passages: list[Passage] = []
    for document in documents:
        passages.extend(chunk_document(document, max_len, overlap, segmenter))
    return passages
