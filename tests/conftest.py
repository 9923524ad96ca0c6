"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import hashlib
import math
import re
import threading
from typing import Any, Sequence

import pytest

from docsearch.config import Settings
from docsearch.errors import CollectionExistsError, CollectionNotFoundError
from docsearch.ingestion.embedder import EmbeddingService
from docsearch.ingestion.models import Chunk
from docsearch.ingestion.segmenter import SentenceSegmenter
from docsearch.retrieval.base import VectorIndex, check_pairing
from docsearch.retrieval.models import CollectionRecord, DistanceMetric

FAKE_DIM = 32


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fakes ───────────────────────────────────────────────────────────────


class FakeEmbeddings:
    """Deterministic bag-of-words embeddings with LangChain's ``Embeddings`` interface.

    Identical texts map to identical unit vectors, so a chunk is always its
    own nearest neighbour under the dot product.
    """

    def __init__(self, dim: int = FAKE_DIM) -> None:
        self.dim = dim
        self.batch_sizes: list[int] = []

    def _vector(self, text: str) -> list[float]:
        vec = [0.0] * self.dim
        for word in re.findall(r"\w+", text.lower()):
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % self.dim
            vec[bucket] += 1.0
        norm = math.sqrt(sum(v * v for v in vec)) or 1.0
        return [v / norm for v in vec]

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.batch_sizes.append(len(texts))
        return [self._vector(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        return self._vector(text)


class FakeIndex(VectorIndex):
    """In-memory vector index ranking by dot product."""

    def __init__(self, collection_policy: str = "fail") -> None:
        super().__init__(collection_policy)
        self.collections: dict[str, dict[str, Any]] = {}
        self.search_calls = 0
        self.fail_upsert: Exception | None = None
        self.fail_delete: Exception | None = None
        self._lock = threading.Lock()

    def create_collection(
        self,
        name: str,
        dimension: int,
        metric: DistanceMetric = DistanceMetric.DOT,
    ) -> CollectionRecord:
        with self._lock:
            if name in self.collections:
                if self.collection_policy == "fail":
                    raise CollectionExistsError(name)
                del self.collections[name]
            self.collections[name] = {"dimension": dimension, "metric": metric, "points": []}
        return CollectionRecord(name=name, dimension=dimension, distance_metric=metric)

    def list_collections(self) -> list[str]:
        return list(self.collections)

    def delete_collection(self, name: str) -> None:
        if self.fail_delete is not None:
            raise self.fail_delete
        self.collections.pop(name, None)

    def upsert(
        self,
        collection: str,
        chunks: Sequence[Chunk],
        embeddings: Sequence[Sequence[float]],
    ) -> int:
        check_pairing(chunks, embeddings)
        if self.fail_upsert is not None:
            raise self.fail_upsert
        points = self._points(collection)
        for i, (chunk, vector) in enumerate(zip(chunks, embeddings)):
            points.append(
                {"id": str(i), "vector": list(vector), "metadata": {"page": chunk.page}, "text": chunk.content}
            )
        return len(chunks)

    def search(
        self,
        collection: str,
        query_embedding: Sequence[float],
        *,
        k: int = 5,
    ) -> list[dict[str, Any]]:
        self.search_calls += 1
        scored = [
            {
                "id": p["id"],
                "text": p["text"],
                "metadata": dict(p["metadata"]),
                "score": sum(a * b for a, b in zip(p["vector"], query_embedding)),
            }
            for p in self._points(collection)
        ]
        scored.sort(key=lambda hit: hit["score"], reverse=True)
        return scored[:k]

    def health_check(self) -> bool:
        return True

    def _points(self, collection: str) -> list[dict[str, Any]]:
        if collection not in self.collections:
            raise CollectionNotFoundError(collection)
        return self.collections[collection]["points"]


# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture()
def fake_embeddings() -> FakeEmbeddings:
    return FakeEmbeddings()


@pytest.fixture()
def embedder(fake_embeddings: FakeEmbeddings) -> EmbeddingService:
    return EmbeddingService("fake-model", batch_size=4, factory=lambda: fake_embeddings)


@pytest.fixture()
def fake_index() -> FakeIndex:
    return FakeIndex()


@pytest.fixture()
def segmenter() -> SentenceSegmenter:
    """Untrained Punkt: same behaviour with or without NLTK data installed."""
    return SentenceSegmenter(pretrained=False)


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        chunk_target_size=60,
        chunk_overlap_sentences=1,
        chunk_workers=1,
        collection_policy="fail",
        search_top_k=3,
    )
