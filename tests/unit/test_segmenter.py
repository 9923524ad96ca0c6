"""Unit tests for sentence segmentation."""

from docsearch.ingestion.segmenter import SentenceSegmenter, default_segmenter, segment


def test_splits_on_terminal_punctuation(segmenter: SentenceSegmenter) -> None:
    text = "The cat sat. The dog ran! Did it rain?"
    assert segmenter.segment(text) == ["The cat sat.", "The dog ran!", "Did it rain?"]


def test_decimal_numbers_are_not_boundaries(segmenter: SentenceSegmenter) -> None:
    sentences = segmenter.segment("The value is 3.14 today. Next sentence here.")
    assert len(sentences) == 2
    assert "3.14" in sentences[0]


def test_text_without_punctuation_is_one_sentence(segmenter: SentenceSegmenter) -> None:
    assert segmenter.segment("just some words") == ["just some words"]


def test_blank_input(segmenter: SentenceSegmenter) -> None:
    assert segmenter.segment("") == []
    assert segmenter.segment("   ") == []


def test_order_is_preserved(segmenter: SentenceSegmenter) -> None:
    text = " ".join(f"Sentence number {i} is here." for i in range(10))
    sentences = segmenter.segment(text)
    assert sentences == [f"Sentence number {i} is here." for i in range(10)]


def test_module_level_helper_uses_shared_segmenter() -> None:
    assert default_segmenter() is default_segmenter()
    assert segment("One. Two.") == ["One.", "Two."]
