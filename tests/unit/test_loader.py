"""Unit tests for document loaders."""

from __future__ import annotations

import io
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from pypdf import PdfWriter

from docsearch.errors import ExtractionError
from docsearch.ingestion.loader import load_pages, load_pdf_pages, load_text_pages


def _blank_pdf(pages: int = 1) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


class TestLoadPdfPages:
    def test_blank_pages_yield_empty_text(self) -> None:
        pages = load_pdf_pages(_blank_pdf(2))
        assert [p.page_number for p in pages] == [1, 2]
        assert all(p.content == "" for p in pages)

    def test_reads_from_path(self, tmp_path: Path) -> None:
        path = tmp_path / "blank.pdf"
        path.write_bytes(_blank_pdf())
        assert len(load_pdf_pages(path)) == 1

    def test_unreadable_document(self) -> None:
        with pytest.raises(ExtractionError, match="Could not open PDF"):
            load_pdf_pages(b"this is not a pdf")

    def test_malformed_document_errors_are_wrapped(self) -> None:
        with patch("docsearch.ingestion.loader.PdfReader", side_effect=KeyError("/Root")):
            with pytest.raises(ExtractionError, match="Could not open PDF") as info:
                load_pdf_pages(b"%PDF-1.7 truncated")
        assert isinstance(info.value.__cause__, KeyError)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ExtractionError):
            load_pdf_pages(tmp_path / "nope.pdf")

    def test_failing_page_is_skipped(self) -> None:
        good = MagicMock()
        good.extract_text.return_value = "readable"
        bad = MagicMock()
        bad.extract_text.side_effect = KeyError("/Contents")
        reader = MagicMock()
        reader.pages = [good, bad, good]

        with patch("docsearch.ingestion.loader.PdfReader", return_value=reader):
            pages = load_pdf_pages(b"%PDF")

        assert [p.page_number for p in pages] == [1, 3]
        assert all(p.content == "readable" for p in pages)


class TestLoadTextPages:
    def test_form_feeds_split_pages(self) -> None:
        pages = load_text_pages("one\ftwo\fthree")
        assert [(p.page_number, p.content) for p in pages] == [(1, "one"), (2, "two"), (3, "three")]

    def test_no_form_feed_is_one_page(self) -> None:
        assert len(load_text_pages("just text")) == 1


class TestLoadPages:
    def test_text_file(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.txt"
        path.write_text("a\fb", encoding="utf-8")
        assert [p.content for p in load_pages(path)] == ["a", "b"]

    def test_pdf_by_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "scan.PDF"
        path.write_bytes(_blank_pdf())
        assert len(load_pages(path)) == 1

    def test_missing_text_file(self, tmp_path: Path) -> None:
        with pytest.raises(ExtractionError, match="Could not read"):
            load_pages(tmp_path / "missing.txt")
