"""docsearch — page-aware chunking, embedding and semantic search for long documents."""

__version__ = "0.1.0"
