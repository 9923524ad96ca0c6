"""Query service — embed a question and return the nearest chunks.

Usage::

    from docsearch.ingestion.embedder import EmbeddingService
    from docsearch.retrieval.chroma_store import ChromaIndex
    from docsearch.retrieval.retriever import QueryService

    service = QueryService(EmbeddingService(), ChromaIndex())
    for result in service.query("annual-report", "What drove revenue growth?"):
        print(result.page, result.text[:80])
"""

from __future__ import annotations

import logging
from typing import Any

from docsearch.config import settings
from docsearch.ingestion.embedder import EmbeddingService
from docsearch.retrieval.base import VectorIndex
from docsearch.retrieval.models import SearchResult, decode_page

logger = logging.getLogger(__name__)


class QueryService:
    """Similarity search over one collection per call.

    Parameters
    ----------
    embedder:
        Shared embedding service; the same instance used at ingestion time.
    index:
        Vector-index backend.
    default_k:
        Number of results when the caller does not pass ``top_k``.
    """

    def __init__(
        self,
        embedder: EmbeddingService,
        index: VectorIndex,
        *,
        default_k: int = settings.search_top_k,
    ) -> None:
        self._embedder = embedder
        self._index = index
        self.default_k = default_k

    def query(self, collection: str, query_text: str, top_k: int | None = None) -> list[SearchResult]:
        """Return up to *top_k* chunks of *collection* closest to *query_text*.

        A blank query returns ``[]`` without touching the model or the store.
        """
        query_text = (query_text or "").strip()
        if not query_text:
            return []

        top_k = top_k or self.default_k
        embedding = self._embedder.embed_one(query_text)
        raw_hits = self._index.search(collection, embedding, k=top_k)
        results = self._to_results(raw_hits)
        logger.info("Query on %r returned %d results", collection, len(results))
        return results

    # -- internals ------------------------------------------------------------

    def _to_results(self, raw_hits: list[dict[str, Any]]) -> list[SearchResult]:
        results: list[SearchResult] = []
        for hit in raw_hits:
            meta = hit.get("metadata") or {}
            text = hit.get("text") or meta.get("text")
            if not isinstance(text, str) or not text:
                logger.warning("Skipping hit %s without text payload", hit.get("id"))
                continue
            score = hit.get("score")
            results.append(
                SearchResult(
                    text=text,
                    page=decode_page(meta.get("page")),
                    score=float(score) if isinstance(score, (int, float)) else None,
                )
            )
        return results
