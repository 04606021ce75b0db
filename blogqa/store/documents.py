from __future__ import annotations

"""Copy-on-write document set and saved feed list."""

import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Iterable

from blogqa.rag.types import Document

logger = logging.getLogger(__name__)

UNTITLED = "제목 없음"


class DocumentNotFoundError(RuntimeError):
    """Raised when deleting a document that is not in the set."""
    pass


def normalize_document(data: dict[str, Any]) -> Document:
    """Coerce an imported record into a Document, filling missing fields."""
    doc_id = data.get("id")
    title = data.get("title")
    url = data.get("url")
    content = data.get("content")
    return Document(
        doc_id=str(doc_id) if doc_id else str(uuid.uuid4()),
        title=title.strip() if isinstance(title, str) and title.strip() else UNTITLED,
        url=url.strip() if isinstance(url, str) else "",
        content=content if isinstance(content, str) else "",
    )


@dataclass
class DocumentStore:
    """Ordered document set replaced wholesale on every mutation.

    Readers hold on to ``documents``; a mutation never changes a tuple a
    reader already has, so identity of ``documents`` tells whether derived
    state is stale.
    """
    documents: tuple[Document, ...] = ()

    def add(self, title: str | None, url: str | None, content: str | None) -> Document:
        """Prepend a new document and return it."""
        document = normalize_document({"title": title, "url": url, "content": content})
        self.documents = (document, *self.documents)
        logger.info("document_added", extra={"doc_id": document.doc_id})
        return document

    def delete(self, doc_id: str) -> None:
        remaining = tuple(doc for doc in self.documents if doc.doc_id != doc_id)
        if len(remaining) == len(self.documents):
            raise DocumentNotFoundError(f"Unknown document: {doc_id}")
        self.documents = remaining
        logger.info("document_deleted", extra={"doc_id": doc_id})

    def import_documents(self, records: Iterable[dict[str, Any]]) -> list[Document]:
        """Prepend imported records as one block, keeping their order.

        A record whose id is already taken, by the current set or an earlier
        record in the batch, gets a fresh id so passage ids stay unique.
        """
        taken = {document.doc_id for document in self.documents}
        imported: list[Document] = []
        for record in records:
            document = normalize_document(record)
            if document.doc_id in taken:
                logger.info("document_id_reassigned", extra={"doc_id": document.doc_id})
                document = replace(document, doc_id=str(uuid.uuid4()))
            taken.add(document.doc_id)
            imported.append(document)
        self.documents = (*imported, *self.documents)
        logger.info("documents_imported", extra={"count": len(imported)})
        return imported

    def export(self) -> list[dict[str, str]]:
        return [document.to_dict() for document in self.documents]


@dataclass
class FeedList:
    """Operator's saved feed URLs, replaced wholesale on change."""
    urls: tuple[str, ...] = field(default_factory=tuple)

    def add(self, url: str) -> list[str]:
        cleaned = url.strip()
        if cleaned:
            self.urls = (*self.urls, cleaned)
        return list(self.urls)

    def remove(self, position: int) -> list[str]:
        if position < 0 or position >= len(self.urls):
            raise IndexError(f"No saved feed at position {position}")
        self.urls = self.urls[:position] + self.urls[position + 1:]
        return list(self.urls)
