"""
Retrieval — vector index access and similarity search.

Public surface
--------------
- :class:`QueryService` — embed a query and return ranked :class:`SearchResult` objects.
- :class:`VectorIndex` — abstract backend (subclass for Qdrant, Pinecone, …).
- :class:`ChromaIndex` — default Chroma backend.
- :class:`CollectionRecord`, :class:`DistanceMetric`, :class:`SearchResult` — data models.
"""

from docsearch.retrieval.base import VectorIndex, collection_name_for
from docsearch.retrieval.models import CollectionRecord, DistanceMetric, SearchResult, decode_page
from docsearch.retrieval.retriever import QueryService

__all__ = [
    "ChromaIndex",
    "CollectionRecord",
    "DistanceMetric",
    "QueryService",
    "SearchResult",
    "VectorIndex",
    "collection_name_for",
    "decode_page",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaIndex to avoid pulling in chromadb at import time."""
    if name == "ChromaIndex":
        from docsearch.retrieval.chroma_store import ChromaIndex

        return ChromaIndex
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
