"""Domain models for collections and search results."""

from __future__ import annotations

import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_PAGE = 1


class DistanceMetric(str, Enum):
    """Similarity function of a collection, valued as Chroma's ``hnsw:space``."""

    DOT = "ip"
    COSINE = "cosine"
    L2 = "l2"


class CollectionRecord(BaseModel):
    """What was created in the store for one ingestion."""

    name: str
    dimension: int = Field(gt=0)
    distance_metric: DistanceMetric = DistanceMetric.DOT


class SearchResult(BaseModel):
    """A retrieved chunk.

    Attributes
    ----------
    text:
        Chunk content as stored.
    page:
        Source page of the chunk.
    score:
        Similarity reported by the store (higher = closer), when available.
    """

    text: str
    page: int = DEFAULT_PAGE
    score: float | None = None

    def __str__(self) -> str:  # noqa: D105
        return f"[p.{self.page}] {self.text[:120]}"


def decode_page(value: Any, default: int = DEFAULT_PAGE) -> int:
    """Decode a ``page`` payload value stored as int, float or numeric string.

    Anything else (missing, bool, NaN, non-numeric text) yields *default*.
    """
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return default
        return int(number) if math.isfinite(number) else default
    return default
