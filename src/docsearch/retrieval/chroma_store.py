"""Chroma implementation of the vector-index abstraction."""

from __future__ import annotations

import contextlib
import logging
import threading
import time
from typing import Any, Iterator, Sequence

import chromadb
import httpx
from chromadb.errors import NotFoundError

from docsearch.config import Settings, settings
from docsearch.errors import (
    CollectionExistsError,
    CollectionNotFoundError,
    EmbeddingDimensionMismatch,
    StoreUnavailable,
)
from docsearch.ingestion.models import Chunk
from docsearch.retrieval.base import VectorIndex, check_pairing
from docsearch.retrieval.models import CollectionRecord, DistanceMetric

logger = logging.getLogger(__name__)

_SPACE_KEY = "hnsw:space"
_DIMENSION_KEY = "dimension"


@contextlib.contextmanager
def _store_errors(action: str) -> Iterator[None]:
    """Re-raise transport failures as :class:`StoreUnavailable`."""
    try:
        yield
    except (httpx.TransportError, ConnectionError) as exc:
        raise StoreUnavailable(f"Chroma unreachable during {action}: {exc}") from exc


def _similarity(distance: float, space: str | None) -> float:
    """Convert a Chroma distance to a similarity where higher is closer."""
    if space in (DistanceMetric.DOT.value, DistanceMetric.COSINE.value):
        # Chroma reports 1 - dot / 1 - cos for these spaces.
        return 1.0 - distance
    return 1.0 / (1.0 + distance)


class ChromaIndex(VectorIndex):
    """Chroma-backed vector index.

    Parameters
    ----------
    host:
        Chroma server hostname.
    port:
        Chroma server port.
    collection_policy:
        See :class:`~docsearch.retrieval.base.VectorIndex`.
    upsert_batch_size:
        Max records per upsert call.
    client:
        Pre-built Chroma client (``EphemeralClient`` in tests).  When omitted
        an ``HttpClient`` is connected on first use.
    """

    def __init__(
        self,
        *,
        host: str = settings.chroma_host,
        port: int = settings.chroma_port,
        collection_policy: str = settings.collection_policy,
        upsert_batch_size: int = settings.upsert_batch_size,
        client: Any | None = None,
    ) -> None:
        super().__init__(collection_policy)
        self._host = host
        self._port = port
        self.upsert_batch_size = upsert_batch_size
        self._client = client
        self._client_lock = threading.Lock()

    @classmethod
    def from_settings(cls, config: Settings = settings) -> ChromaIndex:
        return cls(
            host=config.chroma_host,
            port=config.chroma_port,
            collection_policy=config.collection_policy,
            upsert_batch_size=config.upsert_batch_size,
        )

    @property
    def client(self) -> Any:
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    try:
                        self._client = chromadb.HttpClient(host=self._host, port=self._port)
                    except Exception as exc:
                        raise StoreUnavailable(
                            f"Could not connect to Chroma at {self._host}:{self._port}: {exc}"
                        ) from exc
        return self._client

    def _get_collection(self, name: str, action: str) -> Any:
        with _store_errors(action):
            try:
                return self.client.get_collection(name=name)
            except NotFoundError as exc:
                raise CollectionNotFoundError(name) from exc

    # -- VectorIndex overrides ------------------------------------------------

    def create_collection(
        self,
        name: str,
        dimension: int,
        metric: DistanceMetric = DistanceMetric.DOT,
    ) -> CollectionRecord:
        metric = DistanceMetric(metric)
        if self.has_collection(name):
            if self.collection_policy == "fail":
                raise CollectionExistsError(name)
            logger.warning("Replacing existing collection %r", name)
            self.delete_collection(name)

        with _store_errors("create_collection"):
            self.client.create_collection(
                name=name,
                metadata={_SPACE_KEY: metric.value, _DIMENSION_KEY: dimension},
            )
        logger.info("Created collection %r (dim=%d, space=%s)", name, dimension, metric.value)
        return CollectionRecord(name=name, dimension=dimension, distance_metric=metric)

    def list_collections(self) -> list[str]:
        with _store_errors("list_collections"):
            collections = self.client.list_collections()
        # Depending on the chromadb release this is a list of names or of Collection objects.
        return [getattr(c, "name", c) for c in collections]

    def delete_collection(self, name: str) -> None:
        with _store_errors("delete_collection"):
            try:
                self.client.delete_collection(name=name)
            except NotFoundError as exc:
                raise CollectionNotFoundError(name) from exc
        logger.info("Deleted collection %r", name)

    def upsert(
        self,
        collection: str,
        chunks: Sequence[Chunk],
        embeddings: Sequence[Sequence[float]],
    ) -> int:
        check_pairing(chunks, embeddings)
        if not chunks:
            return 0

        target = self._get_collection(collection, "upsert")
        expected = (target.metadata or {}).get(_DIMENSION_KEY)
        if expected is not None:
            for i, vector in enumerate(embeddings):
                if len(vector) != expected:
                    raise EmbeddingDimensionMismatch(
                        f"Vector {i} has length {len(vector)}, collection {collection!r} expects {expected}"
                    )

        ids = [str(i) for i in range(len(chunks))]
        documents = [chunk.content for chunk in chunks]
        metadatas = [{"page": int(chunk.page)} for chunk in chunks]
        vectors = [list(v) for v in embeddings]

        t0 = time.monotonic()
        batches = 0
        for start in range(0, len(ids), self.upsert_batch_size):
            end = start + self.upsert_batch_size
            with _store_errors("upsert"):
                target.upsert(
                    ids=ids[start:end],
                    embeddings=vectors[start:end],
                    documents=documents[start:end],
                    metadatas=metadatas[start:end],
                )
            batches += 1
            logger.debug("  upserted batch %d (%d-%d)", batches, start, min(end, len(ids)))

        logger.info(
            "Indexed %d vectors → collection %r in %.1fs (%d batches)",
            len(ids), collection, time.monotonic() - t0, batches,
        )
        return len(ids)

    def search(
        self,
        collection: str,
        query_embedding: Sequence[float],
        *,
        k: int = 5,
    ) -> list[dict[str, Any]]:
        target = self._get_collection(collection, "search")
        with _store_errors("search"):
            results = target.query(
                query_embeddings=[list(query_embedding)],
                n_results=k,
                include=["documents", "metadatas", "distances"],
            )
        space = (target.metadata or {}).get(_SPACE_KEY)

        hits: list[dict[str, Any]] = []
        ids = (results.get("ids") or [[]])[0]
        docs = (results.get("documents") or [[]])[0]
        metas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]

        for point_id, content, meta, dist in zip(ids, docs, metas, distances):
            hits.append(
                {
                    "id": point_id,
                    "text": content or "",
                    "score": _similarity(dist, space) if dist is not None else None,
                    "metadata": dict(meta or {}),
                }
            )
        return hits

    def health_check(self) -> bool:
        try:
            self.client.heartbeat()
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False
