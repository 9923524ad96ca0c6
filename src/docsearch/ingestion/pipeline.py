"""End-to-end ingestion: pages → chunks → embeddings → collection."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from docsearch.config import Settings, settings
from docsearch.errors import DocsearchError, PipelineError
from docsearch.ingestion.chunker import chunk_pages
from docsearch.ingestion.embedder import EmbeddingService
from docsearch.ingestion.loader import load_pages, load_pdf_pages
from docsearch.ingestion.models import IngestionReport, Page
from docsearch.retrieval.base import collection_name_for
from docsearch.retrieval.models import DistanceMetric

if TYPE_CHECKING:
    from docsearch.retrieval.base import VectorIndex

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Index documents into one collection each.

    Either a document is fully indexed, or a :class:`PipelineError` is
    raised naming the failing stage.  A collection created during a failed
    run is dropped again; ``PipelineError.partial`` is ``True`` only if that
    clean-up itself failed.
    """

    def __init__(
        self,
        embedder: EmbeddingService,
        index: VectorIndex,
        config: Settings = settings,
    ) -> None:
        self._embedder = embedder
        self._index = index
        self._config = config

    def ingest_pages(self, pages: Sequence[Page], collection: str) -> IngestionReport:
        t0 = time.monotonic()
        cfg = self._config

        try:
            chunks = chunk_pages(
                pages,
                strategy=cfg.chunk_strategy,
                target_size=cfg.chunk_target_size,
                overlap_sentences=cfg.chunk_overlap_sentences,
                max_tokens=cfg.chunk_max_tokens,
                remove_headers=cfg.remove_headers,
                max_workers=cfg.chunk_workers,
            )
        except Exception as exc:
            raise PipelineError("chunk", exc) from exc
        if not chunks:
            raise PipelineError("chunk", ValueError(f"no text chunks found in {len(pages)} pages"))

        try:
            embeddings = self._embedder.embed_batch([c.content for c in chunks])
            dimension = self._embedder.dimension()
        except Exception as exc:
            raise PipelineError("embed", exc) from exc

        try:
            self._index.create_collection(collection, dimension, DistanceMetric(cfg.distance_metric))
        except Exception as exc:
            raise PipelineError("index", exc) from exc

        try:
            self._index.upsert(collection, chunks, embeddings)
        except Exception as exc:
            logger.error("Upsert into %r failed; dropping the collection", collection, exc_info=True)
            raise PipelineError("index", exc, partial=not self._discard(collection)) from exc

        report = IngestionReport(
            collection=collection,
            pages=len(pages),
            chunks=len(chunks),
            dimension=dimension,
            elapsed_seconds=round(time.monotonic() - t0, 2),
        )
        logger.info("%s", report)
        return report

    def ingest_file(self, path: str | Path, collection: str | None = None) -> IngestionReport:
        """Load *path* (PDF or text) and index it, naming the collection after the file by default."""
        try:
            pages = load_pages(path)
        except DocsearchError as exc:
            raise PipelineError("load", exc) from exc
        return self.ingest_pages(pages, collection or collection_name_for(str(path)))

    def ingest_bytes(self, data: bytes, filename: str, collection: str | None = None) -> IngestionReport:
        """Index an in-memory PDF, e.g. an HTTP upload."""
        try:
            pages = load_pdf_pages(data)
        except DocsearchError as exc:
            raise PipelineError("load", exc) from exc
        return self.ingest_pages(pages, collection or collection_name_for(filename))

    def _discard(self, collection: str) -> bool:
        try:
            self._index.delete_collection(collection)
        except Exception:
            logger.exception("Could not drop half-built collection %r", collection)
            return False
        return True
