"""Sentence-aware splitting of long text into overlapping chunks."""

import re
from dataclasses import dataclass

import tiktoken

MAX_CHUNK_CHARS = 1800  # leaves room for the prompt in a ~512 token context
CHUNK_OVERLAP = 150

# A period must sit this far into the window before we snap to it
SENTENCE_MIN_OFFSET = 100

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class Chunk:
    """A slice of the normalized text."""

    index: int
    start: int
    end: int
    text: str

    def __len__(self) -> int:
        return len(self.text)


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    return _WHITESPACE.sub(" ", text).strip()


def count_tokens(text: str, model: str = "gpt-4o-mini") -> int:
    """Count tokens in text using tiktoken."""
    try:
        enc = tiktoken.encoding_for_model(model)
    except KeyError:
        enc = tiktoken.get_encoding("cl100k_base")
    return len(enc.encode(text))


def split_text(
    text: str,
    max_chars: int = MAX_CHUNK_CHARS,
    overlap: int = CHUNK_OVERLAP,
) -> list[Chunk]:
    """
    Split text into chunks of at most max_chars characters.

    Whitespace is normalized first. Each window ends just past the last
    period found more than SENTENCE_MIN_OFFSET characters into it, or at the
    hard limit when there is none. A period is only used if the window after
    it would start past the current one, so a lone period is never snapped
    to twice. The next window starts overlap characters before the previous
    end.

    Args:
        text: Raw input text
        max_chars: Upper bound on chunk length
        overlap: Characters shared by consecutive chunks

    Returns:
        Ordered chunks; empty list for empty or whitespace-only input

    Raises:
        ValueError: If max_chars or overlap are out of range
    """
    if max_chars < 1:
        raise ValueError(f"max_chars must be positive, got {max_chars}")
    if not 0 <= overlap < max_chars:
        raise ValueError(f"overlap must be in [0, {max_chars}), got {overlap}")

    clean = normalize_whitespace(text)
    if not clean:
        return []
    if len(clean) <= max_chars:
        return [Chunk(index=0, start=0, end=len(clean), text=clean)]

    chunks: list[Chunk] = []
    pos = 0
    while True:
        end = min(pos + max_chars, len(clean))
        if end < len(clean):
            boundary = clean.rfind(".", pos, end)
            if boundary > pos + SENTENCE_MIN_OFFSET and boundary + 1 - overlap > pos:
                end = boundary + 1

        chunks.append(Chunk(index=len(chunks), start=pos, end=end, text=clean[pos:end]))

        if end >= len(clean):
            break
        pos = end - overlap

    return chunks
