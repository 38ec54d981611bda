"""Deterministic word-boundary text chunking.

Text is normalised (whitespace runs collapsed to one space, ends trimmed),
split into words, and words are accumulated greedily until adding the
next one would push the chunk past ``max_chunk_chars``.  Words are never
split, so a single word longer than the limit becomes its own oversized
chunk.

Determinism matters here: the retriever can rebuild an excerpt for a
stored ``chunk_index`` by re-chunking the document's current text, which
only works if the same input always yields the same chunks.  Joining the
chunks with single spaces reproduces the normalised text exactly.
"""

from __future__ import annotations

import hashlib

DEFAULT_CHUNK_SIZE = 1500


def normalize_text(text: str) -> str:
    """Collapse every whitespace run to a single space and trim the ends."""
    return " ".join(text.split())


def chunk_text(text: str, max_chunk_chars: int = DEFAULT_CHUNK_SIZE) -> list[str]:
    """Split *text* into word-aligned chunks of at most *max_chunk_chars*.

    Parameters
    ----------
    text:
        Any plain text.  Empty or whitespace-only input yields ``[]``.
    max_chunk_chars:
        Upper bound on chunk length, except for single words that are
        longer on their own.

    Returns
    -------
    list[str]
        Non-empty chunks in document order.
    """
    if max_chunk_chars <= 0:
        raise ValueError(f"max_chunk_chars must be positive, got {max_chunk_chars}")

    chunks: list[str] = []
    buffer: list[str] = []
    buffer_len = 0

    for word in text.split():
        if buffer and buffer_len + 1 + len(word) > max_chunk_chars:
            chunks.append(" ".join(buffer))
            buffer = []
            buffer_len = 0

        buffer_len = len(word) if not buffer else buffer_len + 1 + len(word)
        buffer.append(word)

    if buffer:
        chunks.append(" ".join(buffer))

    return chunks


def chunk_offsets(chunks: list[str]) -> list[int]:
    """Return the start offset of each chunk within the normalised text."""
    offsets: list[int] = []
    position = 0
    for chunk in chunks:
        offsets.append(position)
        position += len(chunk) + 1
    return offsets


def content_hash(text: str) -> str:
    """SHA-256 hex digest used to detect stale persisted chunk text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class TextChunker:
    """Chunker bound to one chunk size, shared by indexing and retrieval.

    Parameters
    ----------
    chunk_size:
        Maximum characters per chunk (default 1500).
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._chunk_size = chunk_size

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def chunk(self, text: str) -> list[str]:
        """Split *text* with this chunker's size."""
        return chunk_text(text, self._chunk_size)

    def chunk_at(self, text: str, index: int) -> str | None:
        """Return chunk *index* of *text*, or ``None`` if out of range."""
        chunks = self.chunk(text)
        if 0 <= index < len(chunks):
            return chunks[index]
        return None
