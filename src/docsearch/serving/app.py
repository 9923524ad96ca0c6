"""FastAPI application: upload a PDF, then search it."""

from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import BackgroundTasks, FastAPI, File, HTTPException, Query, Request, UploadFile
from pydantic import BaseModel

from docsearch.config import Settings, settings
from docsearch.errors import PipelineError, UnknownUploadId
from docsearch.ingestion.embedder import EmbeddingService
from docsearch.ingestion.pipeline import IngestionPipeline
from docsearch.retrieval.base import VectorIndex, collection_name_for
from docsearch.retrieval.retriever import QueryService
from docsearch.serving.registry import UploadRecord, UploadRegistry, UploadStatus

logger = logging.getLogger(__name__)


# ── Response schemas ──────────────────────────────────────────────────
class UploadResponse(BaseModel):
    """Opaque handle for a document being indexed."""

    id: str


class SearchHit(BaseModel):
    page: int
    text: str
    score: float | None = None


# ── Background work ───────────────────────────────────────────────────
def _index_upload(
    pipeline: IngestionPipeline,
    registry: UploadRegistry,
    upload_id: str,
    data: bytes,
    filename: str,
    collection: str,
) -> None:
    try:
        report = pipeline.ingest_bytes(data, filename, collection=collection)
    except PipelineError as exc:
        logger.error("Processing %s (%s) failed: %s", filename, upload_id, exc)
        registry.mark_failed(upload_id, str(exc))
        return
    except Exception as exc:
        logger.exception("Processing %s (%s) crashed", filename, upload_id)
        registry.mark_failed(upload_id, f"{type(exc).__name__}: {exc}")
        return
    registry.mark_ready(upload_id)
    logger.info("Processing %s done: %s", filename, report)


def create_app(
    config: Settings = settings,
    *,
    embedder: EmbeddingService | None = None,
    index: VectorIndex | None = None,
    registry: UploadRegistry | None = None,
) -> FastAPI:
    """Build the app with its shared services.

    The embedding model and the store connection are created lazily, so
    building the app does no I/O.
    """
    if index is None:
        from docsearch.retrieval.chroma_store import ChromaIndex

        index = ChromaIndex.from_settings(config)
    embedder = embedder or EmbeddingService.from_settings(config)

    app = FastAPI(
        title="docsearch API",
        version="0.1.0",
        description="Upload PDFs and run page-aware semantic search over them.",
    )
    app.state.config = config
    app.state.registry = registry or UploadRegistry()
    app.state.pipeline = IngestionPipeline(embedder, index, config)
    app.state.query_service = QueryService(embedder, index, default_k=config.search_top_k)

    # ── Routes ────────────────────────────────────────────────────────
    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "ok"}

    @app.post("/upload", response_model=UploadResponse)
    async def upload(
        request: Request,
        background_tasks: BackgroundTasks,
        pdf: UploadFile | None = File(default=None),
    ) -> UploadResponse:
        """Accept a PDF and index it in the background."""
        if pdf is None:
            raise HTTPException(status_code=400, detail="Multipart field 'pdf' is required")
        data = await pdf.read()
        limit = request.app.state.config.max_upload_bytes
        if len(data) > limit:
            raise HTTPException(status_code=413, detail=f"File exceeds {limit} bytes")

        filename = pdf.filename or "upload.pdf"
        collection = collection_name_for(f"{uuid4().hex[:12]}-{filename}")
        upload_id = request.app.state.registry.register(collection, filename)
        logger.info("Received file: %s (%d bytes) → %s", filename, len(data), upload_id)

        background_tasks.add_task(
            _index_upload,
            request.app.state.pipeline,
            request.app.state.registry,
            upload_id,
            data,
            filename,
            collection,
        )
        return UploadResponse(id=upload_id)

    @app.get("/api/uploads/{upload_id}", response_model=UploadRecord)
    def upload_status(upload_id: str, request: Request) -> UploadRecord:
        """Report whether an upload is still pending, ready or failed."""
        try:
            return request.app.state.registry.resolve(upload_id)
        except UnknownUploadId as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.get("/api/search", response_model=list[SearchHit])
    def search(
        request: Request,
        q: str = "",
        id: str = "",  # noqa: A002
        k: int | None = Query(default=None, gt=0),
    ) -> list[SearchHit]:
        """Search the collection created by upload *id*."""
        query, upload_id = q.strip(), id.strip()
        if not query:
            raise HTTPException(status_code=400, detail="Query parameter 'q' cannot be empty")
        if not upload_id:
            raise HTTPException(status_code=400, detail="Query parameter 'id' cannot be empty")

        try:
            record = request.app.state.registry.resolve(upload_id)
        except UnknownUploadId as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        if record.status is UploadStatus.PENDING:
            raise HTTPException(status_code=409, detail="Document is still being indexed")
        if record.status is UploadStatus.FAILED:
            raise HTTPException(status_code=409, detail=f"Indexing failed: {record.error}")

        try:
            results = request.app.state.query_service.query(record.collection, query, top_k=k)
        except Exception as exc:
            logger.error("Search on %r failed", record.collection, exc_info=True)
            raise HTTPException(status_code=500, detail=f"Search failed: {exc}") from exc
        return [SearchHit(page=r.page, text=r.text, score=r.score) for r in results]

    return app


app = create_app()
