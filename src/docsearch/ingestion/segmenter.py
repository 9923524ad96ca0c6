"""Sentence segmentation on top of NLTK's Punkt tokenizer."""

from __future__ import annotations

import logging
from functools import lru_cache

from nltk.tokenize.punkt import PunktSentenceTokenizer, PunktTokenizer

from docsearch.config import settings

logger = logging.getLogger(__name__)


def _load_punkt(language: str) -> PunktSentenceTokenizer:
    """Return the pretrained Punkt model for *language* if its data is installed.

    Falls back to an untrained tokenizer, which needs no data files: it still
    keeps decimals such as ``3.14`` intact and splits on ``.``/``!``/``?``
    followed by whitespace, but knows no abbreviations.
    """
    try:
        return PunktTokenizer(language)
    except LookupError:
        logger.info(
            "Punkt data for %r not installed; using the untrained sentence tokenizer",
            language,
        )
        return PunktSentenceTokenizer()


class SentenceSegmenter:
    """Split normalized text into an ordered list of sentences.

    Parameters
    ----------
    language:
        Punkt model to use when NLTK data is available locally.  Nothing is
        downloaded.
    pretrained:
        Set to ``False`` to always use the untrained tokenizer (useful for
        deterministic tests).
    """

    def __init__(self, language: str = settings.sentence_language, *, pretrained: bool = True) -> None:
        self.language = language
        self._tokenizer = _load_punkt(language) if pretrained else PunktSentenceTokenizer()

    def segment(self, text: str) -> list[str]:
        if not text or not text.strip():
            return []
        sentences = (s.strip() for s in self._tokenizer.tokenize(text))
        return [s for s in sentences if s]


@lru_cache(maxsize=None)
def default_segmenter() -> SentenceSegmenter:
    """Process-wide segmenter for the configured language."""
    return SentenceSegmenter()


def segment(text: str) -> list[str]:
    """Split *text* into sentences with the default segmenter."""
    return default_segmenter().segment(text)
