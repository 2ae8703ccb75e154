"""Sentence-aligned text chunking for size-limited services."""

import re

from scriptcast.models.content import Chunk

# Sentence-terminal punctuation followed by whitespace
SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


def _sentence_spans(text: str) -> list[tuple[int, int]]:
    spans = []
    start = 0
    for match in SENTENCE_BOUNDARY.finditer(text):
        spans.append((start, match.start()))
        start = match.end()
    spans.append((start, len(text)))
    return spans


def split_text(text: str, max_chunk_size: int = 3000) -> list[str]:
    """
    Split text into chunks of at most ``max_chunk_size`` characters.

    Sentences are packed greedily and never cut: a sentence longer than the
    limit becomes its own oversized chunk. Each chunk is an exact slice of the
    stripped input; only the whitespace separating two chunks is dropped.
    """
    if max_chunk_size < 1:
        raise ValueError("max_chunk_size must be at least 1")

    text = text.strip()
    if not text:
        return []

    chunks = []
    chunk_start = chunk_end = None
    for start, end in _sentence_spans(text):
        if chunk_start is None:
            chunk_start, chunk_end = start, end
        elif end - chunk_start > max_chunk_size:
            chunks.append(text[chunk_start:chunk_end])
            chunk_start, chunk_end = start, end
        else:
            chunk_end = end

    chunks.append(text[chunk_start:chunk_end])
    return chunks


def chunk_text(text: str, max_chunk_size: int = 3000) -> list[Chunk]:
    """Split text into indexed Chunk records (0-based, stable order)."""
    pieces = split_text(text, max_chunk_size)
    return [
        Chunk(index=index, total_chunks=len(pieces), content=piece)
        for index, piece in enumerate(pieces)
    ]
