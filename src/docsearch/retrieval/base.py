"""Abstract base class for vector-store backends.

Adding a new backend (Qdrant, Pinecone, Weaviate …) only requires
subclassing :class:`VectorIndex` and implementing the abstract methods.
Ingestion and querying are backend-agnostic.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, Sequence

from docsearch.errors import EmbeddingDimensionMismatch
from docsearch.ingestion.models import Chunk
from docsearch.retrieval.models import CollectionRecord, DistanceMetric

_ILLEGAL_NAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]+")
_MIN_NAME, _MAX_NAME = 3, 63


def collection_name_for(source: str) -> str:
    """Derive a store-safe collection name from a filename or upload id.

    The result is 3–63 characters of ``[a-zA-Z0-9._-]`` starting and ending
    with an alphanumeric character.
    """
    stem = source.replace("\\", "/").rsplit("/", 1)[-1]
    if "." in stem:
        stem = stem.rsplit(".", 1)[0]
    name = _ILLEGAL_NAME_CHARS.sub("-", stem)
    name = name.strip("._-")[:_MAX_NAME].rstrip("._-")
    if len(name) < _MIN_NAME:
        name = f"doc-{name}" if name else "doc"
    return name


def check_pairing(chunks: Sequence[Chunk], embeddings: Sequence[Sequence[float]]) -> None:
    """Fail fast unless *chunks* and *embeddings* line up one to one."""
    if len(chunks) != len(embeddings):
        raise EmbeddingDimensionMismatch(
            f"Got {len(chunks)} chunks but {len(embeddings)} embeddings; refusing to truncate"
        )


class VectorIndex(ABC):
    """Backend-agnostic vector-store interface.

    Parameters
    ----------
    collection_policy:
        ``"fail"`` — :meth:`create_collection` raises when the name exists.
        ``"replace"`` — the existing collection of that name is dropped first.
        Other collections are never touched.
    """

    def __init__(self, collection_policy: str = "fail") -> None:
        if collection_policy not in ("fail", "replace"):
            raise ValueError(f"Unsupported collection policy: {collection_policy!r}")
        self.collection_policy = collection_policy

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def create_collection(
        self,
        name: str,
        dimension: int,
        metric: DistanceMetric = DistanceMetric.DOT,
    ) -> CollectionRecord:
        """Create collection *name* for vectors of length *dimension*.

        Applies :attr:`collection_policy` when the name already exists.
        """
        ...

    @abstractmethod
    def list_collections(self) -> list[str]:
        """Names of all collections in the store."""
        ...

    @abstractmethod
    def delete_collection(self, name: str) -> None:
        """Drop collection *name* and everything in it."""
        ...

    @abstractmethod
    def upsert(
        self,
        collection: str,
        chunks: Sequence[Chunk],
        embeddings: Sequence[Sequence[float]],
    ) -> int:
        """Store each chunk with its vector and ``{text, page}`` payload.

        Implementations must call :func:`check_pairing` before writing.
        Raises :class:`~docsearch.errors.CollectionNotFoundError` when
        *collection* does not exist.
        Returns the number of points written.
        """
        ...

    @abstractmethod
    def search(
        self,
        collection: str,
        query_embedding: Sequence[float],
        *,
        k: int = 5,
    ) -> list[dict[str, Any]]:
        """Return the top-*k* hits nearest to *query_embedding*.

        Each hit dict contains ``"id"``, ``"text"``, ``"score"`` (higher is
        closer) and ``"metadata"`` (the stored payload, untyped).
        Raises :class:`~docsearch.errors.CollectionNotFoundError` when
        *collection* does not exist.
        """
        ...

    @abstractmethod
    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...

    # -- optional overrides ---------------------------------------------------

    def has_collection(self, name: str) -> bool:
        return name in self.list_collections()
