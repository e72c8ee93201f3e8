"""
Sentence-bounded chunking for long texts.

Sentences are runs of non-terminal characters followed by one or more of
``.!?``; any unterminated tail is kept as a final sentence. Sentences are
packed greedily: a chunk is closed when adding the next sentence would
exceed ``chunk_size``. A single sentence longer than ``chunk_size`` forms a
chunk of its own; sentences are never split.
"""

from __future__ import annotations

import re

from doctrans_llms.config import CHUNK_SIZE

SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]+")


def split_sentences_keep_punctuation(text: str) -> list[str]:
    """Sentences with their terminal punctuation and surrounding spaces."""
    sentences = []
    end = 0
    for match in SENTENCE_PATTERN.finditer(text):
        # A leading run of punctuation belongs to the previous sentence
        if match.start() > end:
            sentences.append(text[end:match.start()])
        sentences.append(match.group(0))
        end = match.end()
    if text[end:].strip():
        sentences.append(text[end:])
    return sentences


def split_into_chunks(text: str, chunk_size: int = CHUNK_SIZE) -> list[str]:
    """Split text into stripped chunks of at most ``chunk_size`` characters.

    Args:
        text: Text to split
        chunk_size: Maximum chunk length, unless one sentence is longer

    Returns:
        Non-empty chunks in source order; ``[]`` for blank text
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    chunks: list[str] = []
    current = ""
    for sentence in split_sentences_keep_punctuation(text):
        if current and len(current + sentence) > chunk_size:
            chunks.append(current.strip())
            current = sentence
        else:
            current += sentence
    if current.strip():
        chunks.append(current.strip())
    return [c for c in chunks if c]
