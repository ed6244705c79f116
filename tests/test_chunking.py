"""Tests for text chunking."""

import math

import pytest

from hier_summarize.chunking import count_tokens, normalize_whitespace, split_text


def _reconstruct(chunks) -> str:
    """Join chunks, trimming each chunk's overlap with its predecessor."""
    text = chunks[0].text
    for prev, chunk in zip(chunks, chunks[1:]):
        text += chunk.text[prev.end - chunk.start :]
    return text


def _sentences(count: int) -> str:
    return " ".join(
        f"Sentence number {i} describes a measured result of the profiling session."
        for i in range(count)
    )


class TestNormalizeWhitespace:
    """Tests for whitespace normalization."""

    def test_collapses_runs(self) -> None:
        assert normalize_whitespace("  a \n\n b\t\tc  ") == "a b c"

    def test_empty(self) -> None:
        assert normalize_whitespace(" \n\t ") == ""


class TestSplitText:
    """Tests for split_text."""

    def test_empty_input_yields_no_chunks(self) -> None:
        assert split_text("") == []
        assert split_text("   \n\t  ") == []

    def test_short_text_single_chunk(self) -> None:
        chunks = split_text("One. Two.  Three.", max_chars=100, overlap=10)
        assert len(chunks) == 1
        assert chunks[0].text == "One. Two. Three."
        assert chunks[0].index == 0

    def test_text_exactly_max_chars_single_chunk(self) -> None:
        text = "x" * 50
        assert len(split_text(text, max_chars=50, overlap=5)) == 1

    def test_chunks_respect_max_chars(self) -> None:
        chunks = split_text(_sentences(80), max_chars=500, overlap=50)
        assert len(chunks) > 1
        assert all(len(c) <= 500 for c in chunks)

    def test_reconstructs_normalized_text(self) -> None:
        text = _sentences(80)
        chunks = split_text(text, max_chars=500, overlap=50)
        assert _reconstruct(chunks) == normalize_whitespace(text)

    def test_reconstructs_without_sentence_breaks(self) -> None:
        text = "word " * 1000
        chunks = split_text(text, max_chars=300, overlap=40)
        assert _reconstruct(chunks) == normalize_whitespace(text)

    def test_snaps_to_sentence_boundary(self) -> None:
        chunks = split_text(_sentences(80), max_chars=500, overlap=50)
        for chunk in chunks[:-1]:
            assert chunk.text.endswith(".")

    def test_consecutive_chunks_overlap(self) -> None:
        chunks = split_text("a" * 1000, max_chars=200, overlap=30)
        for prev, chunk in zip(chunks, chunks[1:]):
            assert prev.end - chunk.start == 30
            assert chunk.start > prev.start

    def test_iteration_bound(self) -> None:
        length, max_chars, overlap = 5000, 400, 100
        chunks = split_text("b" * length, max_chars=max_chars, overlap=overlap)
        assert len(chunks) <= math.ceil(length / (max_chars - overlap)) + 1

    def test_lone_period_snapped_once(self) -> None:
        text = "x" * 1000 + ". " + "y" * 3000
        chunks = split_text(text, max_chars=1800, overlap=150)

        assert len(chunks) <= math.ceil(len(text) / (1800 - 150)) + 1
        assert [(c.start, c.end) for c in chunks] == [(0, 1001), (851, 2651), (2501, 4002)]
        for prev, chunk in zip(chunks, chunks[1:]):
            assert prev.end - chunk.start == 150
        assert _reconstruct(chunks) == text

    def test_indices_are_sequential(self) -> None:
        chunks = split_text(_sentences(50), max_chars=400, overlap=40)
        assert [c.index for c in chunks] == list(range(len(chunks)))

    def test_early_period_is_ignored(self) -> None:
        # The only period sits within the first 100 characters of the window
        text = "Intro. " + "z" * 600
        chunks = split_text(text, max_chars=300, overlap=0)
        assert len(chunks[0]) == 300

    @pytest.mark.parametrize(("max_chars", "overlap"), [(0, 0), (100, 100), (100, -1)])
    def test_invalid_bounds(self, max_chars: int, overlap: int) -> None:
        with pytest.raises(ValueError):
            split_text("some text", max_chars=max_chars, overlap=overlap)


class TestCountTokens:
    """Tests for token counting."""

    def test_counts_tokens(self) -> None:
        count = count_tokens("Hello, world!")
        assert 0 < count < 10

    def test_unknown_model_falls_back(self) -> None:
        assert count_tokens("Hello, world!", model="not-a-real-model") > 0
