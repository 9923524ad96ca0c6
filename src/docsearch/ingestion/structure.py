"""Heuristic predicates for structural noise in extracted text.

These decide whether a line (or a finished chunk) looks like a section
header, table-of-contents debris, or other non-content residue.  They are
deliberately simple and stateless.  Some real content will be classified
as a header and some headers will slip through; that is the accepted
precision/recall trade-off of a regex heuristic, not a bug to patch one
threshold at a time.
"""

from __future__ import annotations

import re

# "3. Results", "3.1 Introduction", "2.4.1.Scope"
_NUMBERED_HEADING = re.compile(r"^(?:\d+\.)+(?:\d+)?\s*[A-Z]")
# "Chapter 4", "Section B", "Part IV", "APPENDIX A"
_KEYWORD_HEADING = re.compile(
    r"^(?:chapter|section|part|appendix)\s+(?:\d+|[IVXLC]+|[A-Z])\b",
    re.IGNORECASE,
)

_MAX_HEADER_LENGTH = 100


def is_section_header(line: str) -> bool:
    """Return ``True`` if *line* looks like a heading rather than body text."""
    line = line.strip()
    if not line:
        return False
    if _NUMBERED_HEADING.match(line) or _KEYWORD_HEADING.match(line):
        return True
    return is_likely_header(line)


def is_likely_header(line: str) -> bool:
    """Shape-based header test for lines the patterns above do not catch."""
    line = line.strip()
    if not line or len(line) > _MAX_HEADER_LENGTH:
        return False

    words = len(line.split())
    starts_with_digit = line[0].isdigit()

    if starts_with_digit and words <= 6:
        return True
    if words <= 5 and all(c.isupper() or c.isspace() or c.isdigit() for c in line):
        return True
    if starts_with_digit and ":" in line and words <= 8:
        return True
    return False


def is_garbage_fragment(text: str) -> bool:
    """Detect leftover TOC/page-number debris: lots of dots, almost no letters."""
    dots = text.count(".")
    letters = sum(1 for c in text if c.isalpha())
    has_digit = any(c.isdigit() for c in text)
    return dots > 10 and letters < 5 and has_digit
