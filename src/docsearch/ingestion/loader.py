"""Document loaders — turn a source document into per-page text."""

from __future__ import annotations

import io
import logging
from pathlib import Path

from pypdf import PdfReader

from docsearch.errors import ExtractionError
from docsearch.ingestion.models import Page

logger = logging.getLogger(__name__)


def load_pdf_pages(source: str | Path | bytes) -> list[Page]:
    """Extract the text of every page of a PDF.

    Parameters
    ----------
    source:
        Path to a PDF file, or the raw bytes of one (e.g. an HTTP upload).

    Returns
    -------
    list[Page]
        One :class:`Page` per readable page, numbered from 1, in document
        order.  A page whose extraction fails is logged and skipped; the
        rest of the document is still returned.

    Raises
    ------
    ExtractionError
        If the document itself cannot be opened.
    """
    try:
        stream = io.BytesIO(source) if isinstance(source, bytes) else str(source)
        reader = PdfReader(stream)
        page_count = len(reader.pages)
    except Exception as exc:  # noqa: BLE001 - pypdf raises KeyError, TypeError and others on malformed files
        raise ExtractionError(f"Could not open PDF: {exc}") from exc

    pages: list[Page] = []
    for index in range(page_count):
        number = index + 1
        try:
            text = reader.pages[index].extract_text() or ""
        except Exception as exc:  # noqa: BLE001 - one bad page must not sink the document
            err = ExtractionError(f"page {number}: {exc}", page=number)
            logger.warning("Skipping unreadable page: %s", err)
            continue
        pages.append(Page(page_number=number, content=text))

    logger.info("Extracted %d / %d pages", len(pages), page_count)
    return pages


def load_text_pages(text: str) -> list[Page]:
    """Split plain text into pages on form feeds (``\\f``), numbered from 1."""
    return [Page(page_number=i + 1, content=part) for i, part in enumerate(text.split("\f"))]


def load_pages(path: str | Path) -> list[Page]:
    """Load a PDF or a plain-text file, chosen by extension."""
    path = Path(path)
    if path.suffix.lower() == ".pdf":
        return load_pdf_pages(path)
    try:
        return load_text_pages(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        raise ExtractionError(f"Could not read {path}: {exc}") from exc
