from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class AskRequest(BaseModel):
    question: str = Field(min_length=1)


class ContextOut(BaseModel):
    text: str
    url: str
    title: str


class LinkOut(BaseModel):
    label: str
    title: str
    url: str


class AskResponse(BaseModel):
    answer: str
    mode: Literal["generated", "extracted"]
    reason: str | None = None
    contexts: list[ContextOut]
    links: list[LinkOut]
    sentences: list[str] = Field(default_factory=list)
    request_id: str


class DocumentIn(BaseModel):
    title: str | None = None
    url: str | None = None
    content: str = ""


class DocumentOut(BaseModel):
    id: str
    title: str
    url: str
    content: str


class DocumentSummary(BaseModel):
    id: str
    title: str
    url: str
    content_length: int


class ImportResponse(BaseModel):
    added: int
    titles: list[str] = Field(default_factory=list)


class DeleteResponse(BaseModel):
    deleted: str


class FeedUrlIn(BaseModel):
    url: str = Field(min_length=1)


class FeedListResponse(BaseModel):
    urls: list[str]


class FeedImportRequest(BaseModel):
    url: str = Field(min_length=1)
    limit: int | None = Field(default=None, ge=1, le=100)


class StatsResponse(BaseModel):
    backend: str
    document_count: int
    passage_count: int
    vocabulary_size: int
