"""Exception hierarchy shared by the ingestion and retrieval layers.

Text processing (normalization, segmentation, chunk assembly) never raises
on content; it degrades through its heuristics instead.  Everything that
talks to a model or a store raises one of the types below.
"""

from __future__ import annotations


class DocsearchError(Exception):
    """Base class for every error raised by this package."""


class ExtractionError(DocsearchError):
    """A page, or a whole document, could not be turned into text."""

    def __init__(self, message: str, *, page: int | None = None) -> None:
        super().__init__(message)
        self.page = page


class ModelInitializationError(DocsearchError):
    """The embedding model could not be constructed.

    Terminal for the :class:`~docsearch.ingestion.embedder.EmbeddingService`
    instance that raised it: the load is not retried.
    """


class EmbeddingDimensionMismatch(DocsearchError, ValueError):
    """Chunks and vectors do not line up (count or vector length)."""


class StoreUnavailable(DocsearchError):
    """The vector store could not be reached."""


class CollectionExistsError(DocsearchError):
    """A collection with the requested name already exists."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Collection {name!r} already exists")
        self.name = name


class CollectionNotFoundError(DocsearchError):
    """The requested collection does not exist in the store."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Collection {name!r} does not exist")
        self.name = name


class UnknownUploadId(DocsearchError, KeyError):
    """The caller supplied an upload id the registry has never issued."""

    def __init__(self, upload_id: str) -> None:
        super().__init__(upload_id)
        self.upload_id = upload_id

    def __str__(self) -> str:
        return f"ID '{self.upload_id}' not found"


class PipelineError(DocsearchError):
    """An ingestion stage failed.

    Attributes
    ----------
    stage:
        ``"load"``, ``"chunk"``, ``"embed"`` or ``"index"``.
    cause:
        The underlying exception (also chained as ``__cause__``).
    partial:
        ``True`` when a collection may have been left behind in the store,
        i.e. the caller cannot assume "nothing was indexed".
    """

    def __init__(self, stage: str, cause: BaseException, *, partial: bool = False) -> None:
        super().__init__(f"{stage} stage failed: {cause}")
        self.stage = stage
        self.cause = cause
        self.partial = partial
