"""Unit tests for the shared embedding service."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import pytest

from docsearch.errors import EmbeddingDimensionMismatch, ModelInitializationError
from docsearch.ingestion.embedder import EmbeddingService, get_embedding_function

TEXTS = [f"text number {i}" for i in range(11)]


class TestEmbedBatch:
    def test_length_and_order_preserved(self, embedder: EmbeddingService, fake_embeddings) -> None:
        vectors = embedder.embed_batch(TEXTS)
        assert len(vectors) == len(TEXTS)
        assert vectors == [fake_embeddings.embed_query(t) for t in TEXTS]

    def test_batching_is_invisible(self, embedder: EmbeddingService, fake_embeddings) -> None:
        batched = embedder.embed_batch(TEXTS, batch_size=3)
        assert fake_embeddings.batch_sizes == [3, 3, 3, 2]
        assert batched == embedder.embed_batch(TEXTS, batch_size=100)

    def test_default_batch_size(self, embedder: EmbeddingService, fake_embeddings) -> None:
        embedder.embed_batch(TEXTS)
        assert fake_embeddings.batch_sizes == [4, 4, 3]

    def test_empty_input_does_not_load_model(self, embedder: EmbeddingService) -> None:
        assert embedder.embed_batch([]) == []
        assert not embedder.initialized

    def test_embed_one_matches_batch(self, embedder: EmbeddingService) -> None:
        assert embedder.embed_one("hello world") == embedder.embed_batch(["hello world"])[0]

    def test_dimension(self, embedder: EmbeddingService) -> None:
        assert embedder.dimension() == 32
        assert embedder.initialized

    def test_short_model_output_is_fatal(self) -> None:
        model = MagicMock()
        model.embed_documents.side_effect = lambda batch: [[0.0, 1.0]] * (len(batch) - 1)
        service = EmbeddingService("broken", factory=lambda: model)
        with pytest.raises(EmbeddingDimensionMismatch):
            service.embed_batch(["a", "b"])

    def test_rejects_non_positive_batch_size(self) -> None:
        with pytest.raises(ValueError, match="batch_size"):
            EmbeddingService("x", batch_size=0, factory=MagicMock())

    @pytest.mark.parametrize("batch_size", [0, -3])
    def test_rejects_non_positive_call_batch_size(self, embedder: EmbeddingService, batch_size: int) -> None:
        with pytest.raises(ValueError, match="batch_size"):
            embedder.embed_batch(TEXTS, batch_size=batch_size)
        assert not embedder.initialized


class TestInitialization:
    def test_concurrent_first_calls_build_one_model(self, fake_embeddings) -> None:
        constructions = []
        lock = threading.Lock()

        def factory():
            time.sleep(0.05)
            with lock:
                constructions.append(1)
            return fake_embeddings

        service = EmbeddingService("slow", factory=factory)
        n = 16
        barrier = threading.Barrier(n)

        def call(i: int) -> list[float]:
            barrier.wait()
            return service.embed_one(f"query {i}")

        with ThreadPoolExecutor(max_workers=n) as pool:
            results = list(pool.map(call, range(n)))

        assert len(constructions) == 1
        assert len(results) == n
        assert all(len(v) == 32 for v in results)

    def test_failed_init_is_shared_and_not_retried(self) -> None:
        factory = MagicMock(side_effect=RuntimeError("weights missing"))
        service = EmbeddingService("missing", factory=factory)
        n = 8
        barrier = threading.Barrier(n)

        def call(_: int) -> BaseException | None:
            barrier.wait()
            try:
                service.embed_one("hi")
            except ModelInitializationError as exc:
                return exc
            return None

        with ThreadPoolExecutor(max_workers=n) as pool:
            errors = list(pool.map(call, range(n)))

        assert all(isinstance(e, ModelInitializationError) for e in errors)
        assert len({id(e) for e in errors}) == 1
        assert factory.call_count == 1

        with pytest.raises(ModelInitializationError, match="weights missing"):
            service.dimension()
        assert factory.call_count == 1
        assert isinstance(errors[0].__cause__, RuntimeError)

    def test_warm_up_loads_model(self, embedder: EmbeddingService) -> None:
        embedder.warm_up()
        assert embedder.initialized


class _ReentrancyProbe:
    """Model that records how many inference calls overlap."""

    def __init__(self) -> None:
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(0.01)
        with self._lock:
            self.active -= 1
        return [[1.0, 0.0] for _ in texts]


@pytest.mark.parametrize(("concurrent", "expect_serial"), [(False, True), (True, False)])
def test_inference_lock(concurrent: bool, expect_serial: bool) -> None:
    probe = _ReentrancyProbe()
    service = EmbeddingService("probe", concurrent_inference=concurrent, factory=lambda: probe)
    service.warm_up()
    n = 8
    barrier = threading.Barrier(n)

    def call(i: int) -> list[float]:
        barrier.wait()
        return service.embed_one(str(i))

    with ThreadPoolExecutor(max_workers=n) as pool:
        list(pool.map(call, range(n)))

    if expect_serial:
        assert probe.max_active == 1
    else:
        assert probe.max_active >= 1


def test_get_embedding_function_configures_huggingface() -> None:
    with patch("langchain_huggingface.HuggingFaceEmbeddings") as hf:
        get_embedding_function("/models/minilm", device="cpu", normalize=True)
    hf.assert_called_once_with(
        model_name="/models/minilm",
        model_kwargs={"device": "cpu"},
        encode_kwargs={"normalize_embeddings": True},
    )
