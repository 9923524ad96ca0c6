"""Domain models flowing through the ingestion pipeline."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Page(BaseModel):
    """Raw text of one physical page, as produced by a loader.

    Attributes
    ----------
    page_number:
        Position of the page in the source document.  The PDF loader
        numbers pages from 1; other loaders document their own base.
    content:
        Extracted text, untouched.
    """

    model_config = ConfigDict(frozen=True)

    page_number: int = Field(ge=0)
    content: str = ""


class Chunk(BaseModel):
    """A retrieval-sized span of text belonging to exactly one page."""

    model_config = ConfigDict(frozen=True)

    content: str
    page: int = Field(ge=0)


class IngestionReport(BaseModel):
    """Summary returned once a document has been fully indexed."""

    collection: str
    pages: int
    chunks: int
    dimension: int
    elapsed_seconds: float = 0.0

    def __str__(self) -> str:  # noqa: D105
        return (
            f"Indexed {self.chunks} chunks from {self.pages} pages "
            f"→ collection '{self.collection}' (dim={self.dimension}) "
            f"in {self.elapsed_seconds:.1f}s"
        )
