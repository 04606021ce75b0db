from __future__ import annotations

"""FastAPI application entrypoint for the blog knowledge-base Q&A service."""

import hashlib
import logging
import uuid
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from blogqa.app.dependencies import (
    build_llm_generator,
    get_document_store,
    get_feed_list,
    get_pipeline,
)
from blogqa.app.metrics import (
    metrics_middleware,
    metrics_response,
    record_answer,
    record_feed_failure,
)
from blogqa.app.schemas import (
    AskRequest,
    AskResponse,
    ContextOut,
    DeleteResponse,
    DocumentIn,
    DocumentOut,
    DocumentSummary,
    FeedImportRequest,
    FeedListResponse,
    FeedUrlIn,
    ImportResponse,
    LinkOut,
    StatsResponse,
)
from blogqa.app.security import AuthContext, require_admin
from blogqa.app.settings import settings
from blogqa.loaders.feed import FeedFetchError, feed_items_to_records, fetch_feed
from blogqa.rag.llm import LLMError
from blogqa.store.documents import DocumentNotFoundError

logger = logging.getLogger(__name__)

app = FastAPI(title="Blog Q&A", version="0.1.0")


def _configure_logging() -> None:
    """Configure root logging using environment settings."""
    level_name = settings.log_level.strip().upper()
    level = getattr(logging, level_name, logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
    logger.setLevel(level)


_configure_logging()


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", str(uuid.uuid4()))


async def _fetch_items(url: str) -> list:
    try:
        return await fetch_feed(
            url,
            timeout=settings.feed_timeout,
            max_bytes=settings.feed_max_bytes,
            user_agent=settings.feed_user_agent,
        )
    except FeedFetchError:
        record_feed_failure()
        raise


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Attach or create a request ID for traceability."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    return await metrics_middleware(request, call_next)


@app.get("/metrics")
async def metrics():
    """Expose Prometheus-style metrics."""
    return metrics_response()


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/stats", response_model=StatsResponse)
async def stats() -> StatsResponse:
    """Return document and index statistics."""
    pipeline = get_pipeline()
    index_stats = pipeline.snapshot().index.stats()
    return StatsResponse(
        backend=str(index_stats["backend"]),
        document_count=len(pipeline.store.documents),
        passage_count=int(index_stats["passage_count"]),
        vocabulary_size=int(index_stats["vocabulary_size"]),
    )


@app.post("/ask", response_model=AskResponse)
async def ask(request: AskRequest, http_request: Request) -> AskResponse:
    """Answer a question from the knowledge base."""
    request_id = _request_id(http_request)
    question = request.question.strip()
    if not question:
        raise HTTPException(status_code=400, detail="Question must not be blank")
    logger.info(
        "question_received",
        extra={
            "request_id": request_id,
            "query_length": len(question),
            "query_hash": hashlib.sha256(question.encode("utf-8")).hexdigest(),
        },
    )
    outcome = await get_pipeline().answer(question)
    reason = getattr(outcome, "reason", None)
    record_answer(outcome.mode, reason)
    logger.info(
        "question_answered",
        extra={
            "request_id": request_id,
            "mode": outcome.mode,
            "reason": reason,
            "contexts": len(outcome.contexts),
        },
    )
    return AskResponse(
        answer=outcome.answer,
        mode=outcome.mode,
        reason=reason,
        contexts=[ContextOut(**item.to_dict()) for item in outcome.contexts],
        links=[LinkOut(label=link.label, title=link.title, url=link.url) for link in outcome.links],
        sentences=list(getattr(outcome, "sentences", [])),
        request_id=request_id,
    )


@app.get("/documents", response_model=list[DocumentSummary])
async def list_documents() -> list[DocumentSummary]:
    return [
        DocumentSummary(
            id=doc.doc_id, title=doc.title, url=doc.url, content_length=len(doc.content)
        )
        for doc in get_document_store().documents
    ]


@app.get("/documents/export", response_model=list[DocumentOut])
async def export_documents() -> list[DocumentOut]:
    """Return the full document set for backup or transfer."""
    return [DocumentOut(**record) for record in get_document_store().export()]


@app.post("/documents", response_model=DocumentOut)
async def add_document(
    request: DocumentIn,
    auth: AuthContext = Depends(require_admin),
) -> DocumentOut:
    document = get_document_store().add(request.title, request.url, request.content)
    return DocumentOut(**document.to_dict())


@app.post("/documents/import", response_model=ImportResponse)
async def import_documents(
    http_request: Request,
    auth: AuthContext = Depends(require_admin),
) -> ImportResponse:
    """Import a JSON array of documents exported earlier."""
    try:
        payload = await http_request.json()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Body is not valid JSON") from exc
    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        raise HTTPException(status_code=400, detail="Expected a JSON array of documents")
    imported = get_document_store().import_documents(payload)
    return ImportResponse(added=len(imported), titles=[doc.title for doc in imported])


@app.delete("/documents/{doc_id}", response_model=DeleteResponse)
async def delete_document(
    doc_id: str,
    auth: AuthContext = Depends(require_admin),
) -> DeleteResponse:
    try:
        get_document_store().delete(doc_id)
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return DeleteResponse(deleted=doc_id)


@app.get("/feeds", response_model=FeedListResponse)
async def list_feeds() -> FeedListResponse:
    return FeedListResponse(urls=list(get_feed_list().urls))


@app.post("/feeds", response_model=FeedListResponse)
async def save_feed(
    request: FeedUrlIn,
    auth: AuthContext = Depends(require_admin),
) -> FeedListResponse:
    return FeedListResponse(urls=get_feed_list().add(request.url))


@app.delete("/feeds/{position}", response_model=FeedListResponse)
async def remove_feed(
    position: int,
    auth: AuthContext = Depends(require_admin),
) -> FeedListResponse:
    try:
        urls = get_feed_list().remove(position)
    except IndexError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return FeedListResponse(urls=urls)


@app.post("/feeds/import", response_model=ImportResponse)
async def import_feed(
    request: FeedImportRequest,
    http_request: Request,
    auth: AuthContext = Depends(require_admin),
) -> ImportResponse:
    """Fetch a feed and add its items to the knowledge base."""
    request_id = _request_id(http_request)
    try:
        items = await _fetch_items(request.url)
    except FeedFetchError as exc:
        logger.error(
            "feed_import_failed",
            extra={"request_id": request_id, "detail": str(exc)},
        )
        raise HTTPException(status_code=502, detail=f"Feed fetch failed: {exc}") from exc
    records = feed_items_to_records(items, limit=request.limit or settings.feed_import_limit)
    imported = get_document_store().import_documents(records)
    logger.info(
        "feed_imported",
        extra={"request_id": request_id, "items": len(items), "added": len(imported)},
    )
    return ImportResponse(added=len(imported), titles=[doc.title for doc in imported])


@app.post("/api/ask")
async def generation_service(http_request: Request) -> JSONResponse:
    """Generate an answer from caller-supplied contexts."""
    try:
        body: Any = await http_request.json()
    except ValueError:
        body = None
    question = body.get("question") if isinstance(body, dict) else None
    contexts = body.get("contexts") if isinstance(body, dict) else None
    if not question or not isinstance(contexts, list):
        return JSONResponse(status_code=400, content={"error": "Missing {question, contexts[]}"})
    try:
        generator = build_llm_generator()
        result = await generator.generate(str(question), contexts)
    except LLMError as exc:
        logger.error(
            "generation_service_failed",
            extra={"request_id": _request_id(http_request), "detail": str(exc)},
        )
        return JSONResponse(status_code=500, content={"error": str(exc)})
    return JSONResponse(
        content={"answer": result.answer, "used": [item.to_dict() for item in result.used]},
        headers={"Cache-Control": "no-store"},
    )


@app.api_route("/api/ask", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"])
async def generation_service_wrong_method() -> JSONResponse:
    return JSONResponse(status_code=405, content={"error": "Use POST"})


@app.get("/api/rss")
async def feed_service(http_request: Request, url: str | None = None) -> JSONResponse:
    """Fetch and normalize a feed for the caller."""
    if not url:
        return JSONResponse(status_code=400, content={"error": "Missing ?url="})
    try:
        items = await _fetch_items(url)
    except FeedFetchError as exc:
        logger.error(
            "feed_service_failed",
            extra={"request_id": _request_id(http_request), "detail": str(exc)},
        )
        return JSONResponse(status_code=502, content={"error": str(exc)})
    return JSONResponse(
        content={"items": [item.to_dict() for item in items]},
        headers={"Cache-Control": "s-maxage=300, stale-while-revalidate"},
    )
