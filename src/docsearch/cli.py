"""Command-line front end.

    docsearch ingest report.pdf --collection annual-report
    docsearch search annual-report "what drove revenue growth" -k 3
    docsearch health
"""

from __future__ import annotations

import argparse
import logging
import sys

from docsearch.config import configure_logging, settings
from docsearch.errors import DocsearchError

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="docsearch", description="Index PDFs and search them by meaning.")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (default: %(default)s)")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Process and index a file")
    ingest.add_argument("path", help="PDF or plain-text file")
    ingest.add_argument("--collection", help="Collection name (default: derived from the file name)")
    ingest.add_argument(
        "--replace",
        action="store_true",
        help="Replace an existing collection of the same name instead of failing",
    )

    search = sub.add_parser("search", help="Search in a collection")
    search.add_argument("collection")
    search.add_argument("query", nargs="+")
    search.add_argument("-k", "--top-k", type=int, default=settings.search_top_k)

    sub.add_parser("health", help="Check that the vector store is reachable")
    return parser


def _ingest(args: argparse.Namespace) -> int:
    from docsearch.ingestion.embedder import EmbeddingService
    from docsearch.ingestion.pipeline import IngestionPipeline
    from docsearch.retrieval.chroma_store import ChromaIndex

    config = settings.model_copy(update={"collection_policy": "replace"}) if args.replace else settings
    pipeline = IngestionPipeline(EmbeddingService.from_settings(config), ChromaIndex.from_settings(config), config)
    report = pipeline.ingest_file(args.path, collection=args.collection)
    print(report)
    return 0


def _search(args: argparse.Namespace) -> int:
    from docsearch.ingestion.embedder import EmbeddingService
    from docsearch.retrieval.chroma_store import ChromaIndex
    from docsearch.retrieval.retriever import QueryService

    service = QueryService(EmbeddingService.from_settings(), ChromaIndex.from_settings())
    results = service.query(args.collection, " ".join(args.query), top_k=args.top_k)
    if not results:
        print("No results.")
        return 0

    print("\nSearch Results:")
    print("===============")
    for result in results:
        print("-----")
        score = f"  (score {result.score:.3f})" if result.score is not None else ""
        print(f"page {result.page}{score}")
        print(result.text)
    return 0


def _health(args: argparse.Namespace) -> int:
    from docsearch.retrieval.chroma_store import ChromaIndex

    ok = ChromaIndex.from_settings().health_check()
    print("ok" if ok else "unreachable")
    return 0 if ok else 1


_COMMANDS = {"ingest": _ingest, "search": _search, "health": _health}


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(args.log_level.upper())
    try:
        return _COMMANDS[args.command](args)
    except DocsearchError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
