"""Text chunking strategies.

Two strategies turn a page into chunks:

* :func:`assemble` — the default.  Packs sentences until a character target
  is reached, then starts the next chunk with the last few sentences of the
  previous one so context carries across the boundary.
* :func:`assemble_by_sections` — packs whole paragraphs under an estimated
  token budget and only falls back to sentences for oversized paragraphs.

Chunks never span pages: :func:`chunk_pages` runs one strategy per page and
tags every chunk with that page's number.
"""

from __future__ import annotations

import logging
import math
import re
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Iterable, Literal, Sequence

from docsearch.config import settings
from docsearch.ingestion.models import Chunk, Page
from docsearch.ingestion.normalizer import normalize_paragraphs, normalize_text
from docsearch.ingestion.segmenter import SentenceSegmenter, default_segmenter
from docsearch.ingestion.structure import is_garbage_fragment, is_section_header

logger = logging.getLogger(__name__)

_PARAGRAPH_BREAK = re.compile(r"\n[ \t]*\n")

Strategy = Literal["sentences", "sections"]


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters, rounded up.

    This is an approximation for budgeting only, not a tokenizer.
    """
    return math.ceil(len(text) / 4)


def _finalize(texts: Iterable[str], page: int) -> list[Chunk]:
    chunks: list[Chunk] = []
    for text in texts:
        text = text.strip()
        if not text or is_garbage_fragment(text):
            continue
        chunks.append(Chunk(content=text, page=page))
    return chunks


def assemble(
    sentences: Sequence[str],
    page: int,
    target_size: int = 200,
    overlap_sentences: int = 1,
    *,
    skip_headers: bool = True,
) -> list[Chunk]:
    """Pack *sentences* into chunks of at least *target_size* characters.

    Parameters
    ----------
    sentences:
        Sentences of one page, in reading order.
    page:
        Page number stamped on every chunk.
    target_size:
        A chunk is emitted as soon as its text reaches this many characters.
        The last chunk of the page may be shorter.
    overlap_sentences:
        Number of trailing sentences of an emitted chunk that also open the
        next one.  Always leaves room for at least one new sentence.
    skip_headers:
        Drop sentences that look like section headers before packing.

    Returns
    -------
    list[Chunk]
        Non-empty, non-garbage chunks in emission order.
    """
    overlap_sentences = max(overlap_sentences, 0)
    texts: list[str] = []
    buffer: list[str] = []
    fresh = 0

    for sentence in sentences:
        sentence = sentence.strip()
        if not sentence or (skip_headers and is_section_header(sentence)):
            continue

        buffer.append(sentence)
        fresh += 1
        text = " ".join(buffer)
        if len(text) >= target_size:
            texts.append(text)
            keep = min(overlap_sentences, len(buffer) - 1)
            buffer = buffer[len(buffer) - keep :] if keep else []
            fresh = 0

    # A buffer holding only overlap was already emitted as part of the last chunk.
    if buffer and fresh:
        texts.append(" ".join(buffer))

    return _finalize(texts, page)


def _pack(pieces: Iterable[str], max_tokens: int, separator: str) -> list[str]:
    packed: list[str] = []
    current: list[str] = []
    for piece in pieces:
        if current and estimate_tokens(separator.join([*current, piece])) > max_tokens:
            packed.append(separator.join(current))
            current = []
        current.append(piece)
    if current:
        packed.append(separator.join(current))
    return packed


def assemble_by_sections(
    page_text: str,
    page: int,
    max_tokens: int = 500,
    *,
    segmenter: SentenceSegmenter | None = None,
) -> list[Chunk]:
    """Pack paragraphs of *page_text* into chunks under *max_tokens*.

    Paragraphs that fit are kept whole and joined with blank lines.  A
    paragraph that alone exceeds the budget is split into sentences, which
    are packed under the same budget; a single sentence longer than the
    budget becomes a chunk of its own.
    """
    segmenter = segmenter or default_segmenter()
    paragraphs = [p.strip() for p in _PARAGRAPH_BREAK.split(page_text or "") if p.strip()]

    texts: list[str] = []
    pending: list[str] = []
    for paragraph in paragraphs:
        if estimate_tokens(paragraph) <= max_tokens:
            pending.append(paragraph)
            continue
        texts.extend(_pack(pending, max_tokens, "\n\n"))
        pending = []
        texts.extend(_pack(segmenter.segment(paragraph), max_tokens, " "))
    texts.extend(_pack(pending, max_tokens, "\n\n"))

    return _finalize(texts, page)


def chunk_page(
    page: Page,
    *,
    strategy: Strategy = "sentences",
    target_size: int = 200,
    overlap_sentences: int = 1,
    max_tokens: int = 500,
    remove_headers: bool = True,
    segmenter: SentenceSegmenter | None = None,
) -> list[Chunk]:
    """Normalize, segment and assemble a single page."""
    segmenter = segmenter or default_segmenter()
    if strategy == "sections":
        text = normalize_paragraphs(page.content, remove_headers=remove_headers)
        return assemble_by_sections(text, page.page_number, max_tokens, segmenter=segmenter)
    if strategy != "sentences":
        raise ValueError(f"Unsupported chunk strategy: {strategy!r}")

    text = normalize_text(page.content, remove_headers=remove_headers)
    return assemble(
        segmenter.segment(text),
        page.page_number,
        target_size,
        overlap_sentences,
        skip_headers=remove_headers,
    )


def chunk_pages(
    pages: Sequence[Page],
    *,
    strategy: Strategy = settings.chunk_strategy,
    target_size: int = settings.chunk_target_size,
    overlap_sentences: int = settings.chunk_overlap_sentences,
    max_tokens: int = settings.chunk_max_tokens,
    remove_headers: bool = settings.remove_headers,
    segmenter: SentenceSegmenter | None = None,
    max_workers: int = settings.chunk_workers,
) -> list[Chunk]:
    """Chunk every page of a document.

    Pages are independent, so they are processed on a thread pool when
    *max_workers* > 1.  The result is ordered by page number, then by
    emission order within the page.
    """
    if not pages:
        return []

    work = partial(
        chunk_page,
        strategy=strategy,
        target_size=target_size,
        overlap_sentences=overlap_sentences,
        max_tokens=max_tokens,
        remove_headers=remove_headers,
        segmenter=segmenter or default_segmenter(),
    )
    if max_workers > 1 and len(pages) > 1:
        with ThreadPoolExecutor(max_workers=min(max_workers, len(pages))) as pool:
            per_page = list(pool.map(work, pages))
    else:
        per_page = [work(page) for page in pages]

    ordered = sorted(zip(pages, per_page), key=lambda item: item[0].page_number)
    chunks = [chunk for _, page_chunks in ordered for chunk in page_chunks]
    logger.info("Produced %d chunks from %d pages (strategy=%s)", len(chunks), len(pages), strategy)
    return chunks
