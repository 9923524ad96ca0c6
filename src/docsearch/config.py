"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application-wide settings, populated from ``DOCSEARCH_*`` env vars or a .env file."""

    # Vector store
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    distance_metric: Literal["ip", "cosine", "l2"] = Field(
        default="ip",
        description="Chroma hnsw:space for new collections ('ip' is the dot product).",
    )
    collection_policy: Literal["fail", "replace"] = Field(
        default="fail",
        description=(
            "What create_collection does when the name already exists: "
            "'fail' raises, 'replace' drops that one collection first."
        ),
    )
    upsert_batch_size: int = Field(default=5000, gt=0)

    # Embedding
    embedding_model: str = Field(
        default="sentence-transformers/all-MiniLM-L6-v2",
        description="HuggingFace model id, or a local directory holding weights, tokenizer and config.",
    )
    embedding_device: str = "cpu"
    embedding_batch_size: int = Field(default=32, gt=0)
    normalize_embeddings: bool = True
    concurrent_inference: bool = Field(
        default=False,
        description="Allow inference calls to overlap. Leave off unless the model is known to be re-entrant.",
    )

    # Chunking
    chunk_strategy: Literal["sentences", "sections"] = "sentences"
    chunk_target_size: int = Field(default=200, gt=0, description="Characters per sentence-bounded chunk.")
    chunk_overlap_sentences: int = Field(default=1, ge=0)
    chunk_max_tokens: int = Field(default=500, gt=0, description="Token budget for the sections strategy.")
    chunk_workers: int = Field(default=4, ge=1)
    remove_headers: bool = True
    sentence_language: str = "english"

    # Search / serving
    search_top_k: int = Field(default=5, gt=0)
    max_upload_bytes: int = 10 * 1024 * 1024

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="DOCSEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


def configure_logging(level: str | int | None = None) -> None:
    """Install the root handler used by the CLI and the HTTP app."""
    logging.basicConfig(
        level=level or settings.log_level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


# Singleton: import `settings` wherever needed.
settings = Settings()
