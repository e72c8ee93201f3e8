"""
Utility functions shared by ingestion, cleansing and alignment.

Functions:
    count_words: Count non-empty whitespace-delimited tokens
    estimate_page_count: Page-count heuristic (250 words per page)
    split_sentences: Split text on sentence-ending punctuation
    clamp: Clamp a value into a closed range
    overlap_ratio: Shared-item ratio used by alignment confidence

Example:
    >>> from doctrans_llms.utils import count_words, estimate_page_count
    >>> count_words("  one two   three ")
    3
    >>> estimate_page_count("word " * 251)
    2
"""

from __future__ import annotations

import math
import re
from typing import Sequence

from doctrans_llms.config import WORDS_PER_PAGE

_WHITESPACE_RE = re.compile(r"\s+")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


def count_words(text: str) -> int:
    """Count non-empty whitespace-delimited tokens."""
    return len([w for w in _WHITESPACE_RE.split(text.strip()) if w])


def estimate_page_count(text: str) -> int:
    """Estimate pages as ``max(1, ceil(words / 250))``.

    This heuristic is shared by every parser so that page counts agree
    regardless of the input format.
    """
    return max(1, math.ceil(count_words(text) / WORDS_PER_PAGE))


def split_sentences(text: str, min_length: int = 0) -> list[str]:
    """Split text on runs of ``.!?`` and drop pieces not longer than min_length.

    Pieces are returned stripped. With ``min_length=10`` this gives the
    "long sentences" used by the summariser.
    """
    pieces = _SENTENCE_SPLIT_RE.split(text)
    return [p.strip() for p in pieces if len(p.strip()) > min_length]


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into ``[low, high]``."""
    return max(low, min(high, value))


def length_ratio(a: int, b: int) -> float:
    """``min / max`` of two lengths; 0.0 when either is empty."""
    if a <= 0 or b <= 0:
        return 0.0
    return min(a, b) / max(a, b)


def overlap_ratio(source: Sequence[str], target: Sequence[str]) -> float:
    """Fraction of source items also present in target, over the longer length.

    Items are compared as given; callers lowercase beforehand for
    case-insensitive overlap.
    """
    longest = max(len(source), len(target))
    if longest == 0:
        return 0.0
    target_set = set(target)
    shared = sum(1 for item in source if item in target_set)
    return shared / longest
