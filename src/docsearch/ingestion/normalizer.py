"""Cleanup of raw page text produced by PDF extraction.

:func:`normalize_text` turns the line-oriented, artifact-laden output of a
text extractor into one clean stream of prose:

1. drop header lines (optional, see :mod:`docsearch.ingestion.structure`)
2. drop table-of-contents leader rows (``Introduction . . . . . 4``)
3. drop lines that are mostly non-alphabetic (page numbers, OCR noise)
4. re-attach words hyphenated across a line break
5. join lines, keeping a break after sentence-ending punctuation
6. strip control characters
7. collapse whitespace
8. replace ligatures and invisible characters
9. collapse runs of repeated punctuation
10. trim

The function is pure and a fixed point: the line filters are re-applied to
the joined result until it stops changing, so
``normalize_text(normalize_text(t)) == normalize_text(t)``.
"""

from __future__ import annotations

import re

from docsearch.ingestion.structure import is_section_header

_LIGATURES = str.maketrans(
    {
        "\N{LATIN SMALL LIGATURE FF}": "ff",
        "\N{LATIN SMALL LIGATURE FI}": "fi",
        "\N{LATIN SMALL LIGATURE FL}": "fl",
        "\N{LATIN SMALL LIGATURE FFI}": "ffi",
        "\N{LATIN SMALL LIGATURE FFL}": "ffl",
        "\N{LATIN SMALL LIGATURE LONG S T}": "st",
        "\N{LATIN SMALL LIGATURE ST}": "st",
        "\N{ZERO WIDTH SPACE}": "",
        "\N{ZERO WIDTH NON-JOINER}": "",
        "\N{ZERO WIDTH JOINER}": "",
        "\N{WORD JOINER}": "",
        "\N{ZERO WIDTH NO-BREAK SPACE}": "",
        "\N{SOFT HYPHEN}": "",
        "\N{NO-BREAK SPACE}": " ",
        "\N{NARROW NO-BREAK SPACE}": " ",
        "\N{FIGURE SPACE}": " ",
    }
)

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f-\x9f]")
_WHITESPACE = re.compile(r"\s+")
_HYPHEN_BREAK = re.compile(r"-[ \t]*\r?\n[ \t]*")
_REPEATED_PUNCT = re.compile(r"([^\w\s])\1{2,}")
_LEADER_RUN = re.compile(r"(?:[.·…•][ \t]?){5,}")
_LEADER_CHARS = frozenset(".·…•")
_TERMINAL_PUNCT = (".", "!", "?")

_MIN_ALPHA_RATIO = 0.25
_LEADER_RATIO = 0.8


def _visible(line: str) -> str:
    """What a reader sees on *line*: no invisibles, no control chars, no edges."""
    return _CONTROL_CHARS.sub("", line.translate(_LIGATURES)).strip()


def _is_toc_leader(line: str) -> bool:
    if not _LEADER_RUN.search(line):
        return False
    chars = [c for c in line if not c.isspace()]
    leaderish = sum(1 for c in chars if c in _LEADER_CHARS or c.isdigit())
    return leaderish >= _LEADER_RATIO * len(chars)


def _is_mostly_symbols(line: str) -> bool:
    chars = [c for c in line if not c.isspace()]
    if not chars:
        return False
    letters = sum(1 for c in chars if c.isalpha())
    return letters < _MIN_ALPHA_RATIO * len(chars)


def _keep_line(line: str, remove_headers: bool) -> bool:
    visible = _visible(line)
    if not visible:
        return True
    if remove_headers and is_section_header(visible):
        return False
    if _is_toc_leader(visible):
        return False
    return not _is_mostly_symbols(visible)


def _join_lines(lines: list[str]) -> str:
    parts: list[str] = []
    for line in lines:
        if parts:
            parts.append("\n" if parts[-1].rstrip().endswith(_TERMINAL_PUNCT) else " ")
        parts.append(line)
    return "".join(parts)


def clean_characters(text: str) -> str:
    """Character-level cleanup (steps 6–10) without any line filtering."""
    text = _CONTROL_CHARS.sub("", text)
    text = _WHITESPACE.sub(" ", text)
    # Ligature replacement can introduce spaces, so collapse once more.
    text = _WHITESPACE.sub(" ", text.translate(_LIGATURES))
    text = _REPEATED_PUNCT.sub(r"\1", text)
    return text.strip()


def _clean_once(raw_text: str, remove_headers: bool) -> str:
    if not raw_text:
        return ""

    lines = raw_text.splitlines()
    kept = [line for line in lines if _keep_line(line, remove_headers)]
    text = _HYPHEN_BREAK.sub("", "\n".join(kept))
    text = _join_lines(text.split("\n"))
    return clean_characters(text)


def normalize_text(raw_text: str, remove_headers: bool = True) -> str:
    """Clean one page of extracted text into a single normalized string.

    Parameters
    ----------
    raw_text:
        Text as returned by the extractor, newlines intact.
    remove_headers:
        Drop lines that :func:`~docsearch.ingestion.structure.is_section_header`
        classifies as headings.

    Returns
    -------
    str
        Single-line text; empty when nothing survives the filters.
    """
    text = _clean_once(raw_text, remove_headers)
    # Joining lines can produce a header-shaped line that no input line was,
    # so filter again until nothing changes. The output is a single line,
    # which a further pass either keeps as is or drops.
    while text:
        again = _clean_once(text, remove_headers)
        if again == text:
            break
        text = again
    return text


def normalize_paragraphs(raw_text: str, remove_headers: bool = True) -> str:
    """Like :func:`normalize_text` but keeps blank-line paragraph breaks.

    Returns the surviving paragraphs joined by ``"\\n\\n"``.
    """
    paragraphs = re.split(r"\n[ \t]*\n", raw_text or "")
    cleaned = (normalize_text(p, remove_headers=remove_headers) for p in paragraphs)
    return "\n\n".join(p for p in cleaned if p)
