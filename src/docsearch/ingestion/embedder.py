"""Embedding service — one lazily loaded model shared by every caller."""

from __future__ import annotations

import contextlib
import logging
import threading
import time
from typing import TYPE_CHECKING, Callable, Sequence

from docsearch.config import Settings, settings
from docsearch.errors import EmbeddingDimensionMismatch, ModelInitializationError

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)

ModelFactory = Callable[[], "Embeddings"]

_DIMENSION_PROBE = "dimension probe"


def get_embedding_function(
    model_name: str = settings.embedding_model,
    *,
    device: str = settings.embedding_device,
    normalize: bool = settings.normalize_embeddings,
) -> Embeddings:
    """Return the configured sentence-transformer embedding function.

    *model_name* may be a HuggingFace hub id or a local directory with the
    model weights, tokenizer and config files.
    """
    from langchain_huggingface import HuggingFaceEmbeddings

    return HuggingFaceEmbeddings(
        model_name=model_name,
        model_kwargs={"device": device},
        encode_kwargs={"normalize_embeddings": normalize},
    )


class EmbeddingService:
    """Thread-safe front for a single embedding model.

    The model is built on first use, exactly once, no matter how many
    threads arrive at the same time.  If building it fails, the failure is
    remembered and re-raised to every later caller; there is no retry.

    Parameters
    ----------
    model_name:
        Hub id or local path handed to :func:`get_embedding_function`.
    batch_size:
        Default number of texts per forward pass in :meth:`embed_batch`.
    normalize:
        L2-normalise vectors, which makes dot-product search rank like cosine.
    concurrent_inference:
        When ``False`` (default) inference calls are serialized behind a lock.
    factory:
        Zero-argument callable returning a LangChain ``Embeddings`` object.
        Overrides *model_name*; mainly for tests and custom backends.
    """

    def __init__(
        self,
        model_name: str = settings.embedding_model,
        *,
        batch_size: int = settings.embedding_batch_size,
        normalize: bool = settings.normalize_embeddings,
        device: str = settings.embedding_device,
        concurrent_inference: bool = settings.concurrent_inference,
        factory: ModelFactory | None = None,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.model_name = model_name
        self.batch_size = batch_size
        self._factory = factory or (
            lambda: get_embedding_function(model_name, device=device, normalize=normalize)
        )
        self._model: Embeddings | None = None
        self._init_error: ModelInitializationError | None = None
        self._dimension: int | None = None
        self._init_lock = threading.Lock()
        self._inference_lock = contextlib.nullcontext() if concurrent_inference else threading.Lock()

    @classmethod
    def from_settings(cls, config: Settings = settings) -> EmbeddingService:
        return cls(
            config.embedding_model,
            batch_size=config.embedding_batch_size,
            normalize=config.normalize_embeddings,
            device=config.embedding_device,
            concurrent_inference=config.concurrent_inference,
        )

    # -- lifecycle ------------------------------------------------------------

    @property
    def initialized(self) -> bool:
        return self._model is not None

    def _get_model(self) -> Embeddings:
        model = self._model
        if model is not None:
            return model

        with self._init_lock:
            if self._model is not None:
                return self._model
            if self._init_error is not None:
                raise self._init_error

            logger.info("Initializing embedding model %s (first use)", self.model_name)
            t0 = time.monotonic()
            try:
                model = self._factory()
            except Exception as exc:
                logger.error("Embedding model %s failed to initialize", self.model_name, exc_info=True)
                self._init_error = ModelInitializationError(
                    f"Could not load embedding model {self.model_name!r}: {exc}"
                )
                raise self._init_error from exc

            self._model = model
            logger.info("Embedding model ready in %.1fs", time.monotonic() - t0)
            return model

    def warm_up(self) -> None:
        """Load the model now instead of on the first request."""
        self.dimension()

    # -- inference ------------------------------------------------------------

    def embed_batch(self, texts: Sequence[str], batch_size: int | None = None) -> list[list[float]]:
        """Embed *texts*, returning one vector per text in the same order.

        Texts are sent to the model *batch_size* at a time; the batching is
        invisible in the result.
        """
        batch_size = self.batch_size if batch_size is None else batch_size
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if not texts:
            return []
        model = self._get_model()

        vectors: list[list[float]] = []
        t0 = time.monotonic()
        for start in range(0, len(texts), batch_size):
            batch = list(texts[start : start + batch_size])
            with self._inference_lock:
                embedded = model.embed_documents(batch)
            if len(embedded) != len(batch):
                raise EmbeddingDimensionMismatch(
                    f"Model returned {len(embedded)} vectors for a batch of {len(batch)} texts"
                )
            vectors.extend(list(v) for v in embedded)
            logger.debug("  embedded %d / %d", len(vectors), len(texts))

        logger.info("Embedded %d texts in %.1fs", len(vectors), time.monotonic() - t0)
        return vectors

    def embed_one(self, text: str) -> list[float]:
        """Embed a single text (same vector ``embed_batch([text])`` would give)."""
        return self.embed_batch([text])[0]

    def dimension(self) -> int:
        """Length of every vector this model produces."""
        if self._dimension is None:
            self._dimension = len(self.embed_one(_DIMENSION_PROBE))
        return self._dimension
