"""
Ingestion — page text cleanup, chunking, and embedding into the vector store.

Raw per-page text flows through the normalizer, the structural filter, the
sentence segmenter and the chunk assembler; the resulting chunks are
embedded by one shared :class:`~docsearch.ingestion.embedder.EmbeddingService`
and written to a collection by :class:`~docsearch.ingestion.pipeline.IngestionPipeline`.
"""
