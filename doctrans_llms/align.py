"""
Bilingual alignment and synchronized-scroll helpers.

Alignment is positional, not semantic: the i-th source segment is paired
with the i-th target segment, and within a pair the j-th word with the
j-th word. Segments beyond the shorter list stay unaligned.

Confidence:
    segment = 0.3 * length_ratio(chars) + 0.7 * word_overlap, in [0.1, 1.0]
    word    = 0.4 * length_ratio(chars) + 0.6 * char_overlap

All functions are pure and cheap; the reader calls ``calculate_sync_offset``
on every scroll event.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from dataclasses import dataclass
from typing import Optional

from doctrans_llms.models import (
    BilingualView,
    DocumentContent,
    DocumentSegment,
    SegmentAlignment,
    SegmentType,
    WordAlignment,
    segments_from_structure,
)
from doctrans_llms.utils import clamp, length_ratio, overlap_ratio

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 1.0
VALID_THRESHOLD = 0.3

FEEDBACK_DELTAS = {
    "correct": 0.1,
    "incorrect": -0.2,
    "partial": -0.05,
}

_BLANK_LINE_RE = re.compile(r"\n\s*\n")


# ============================================================================
# Confidence
# ============================================================================

def segment_confidence(source_text: str, target_text: str) -> float:
    """Segment pair confidence from length ratio and shared words."""
    ratio = length_ratio(len(source_text), len(target_text))
    overlap = overlap_ratio(source_text.lower().split(), target_text.lower().split())
    return clamp(0.3 * ratio + 0.7 * overlap, MIN_CONFIDENCE, MAX_CONFIDENCE)


def word_confidence(source_word: str, target_word: str) -> float:
    """Word pair confidence from length ratio and shared characters."""
    ratio = length_ratio(len(source_word), len(target_word))
    overlap = overlap_ratio(list(source_word.lower()), list(target_word.lower()))
    return 0.4 * ratio + 0.6 * overlap


def align_words(source_words: list[str], target_words: list[str]) -> list[WordAlignment]:
    """Positional word alignment over the shorter word list."""
    return [
        WordAlignment(
            source_word=src,
            target_word=tgt,
            source_position=i,
            target_position=i,
            confidence=word_confidence(src, tgt),
        )
        for i, (src, tgt) in enumerate(zip(source_words, target_words))
    ]


# ============================================================================
# Segment alignment
# ============================================================================

def validate_alignment(alignment: SegmentAlignment) -> bool:
    """An alignment is usable when confident enough and word-aligned."""
    return alignment.confidence > VALID_THRESHOLD and len(alignment.word_alignments) > 0


def align(
    source_segments: list[DocumentSegment],
    target_segments: list[DocumentSegment],
) -> list[SegmentAlignment]:
    """Pair segments by position.

    Weak pairs are kept and flagged with ``is_valid=False`` so a caller can
    request regeneration; see ``invalid_alignments``.
    """
    alignments = []
    for source, target in zip(source_segments, target_segments):
        words = align_words(
            [t.text for t in source.word_tokens],
            [t.text for t in target.word_tokens],
        )
        alignment = SegmentAlignment(
            source_segment_id=source.id,
            target_segment_id=target.id,
            confidence=segment_confidence(source.text, target.text),
            word_alignments=words,
        )
        alignments.append(dataclasses.replace(alignment, is_valid=validate_alignment(alignment)))

    if len(source_segments) != len(target_segments):
        logger.debug(
            "Segment count mismatch: %d source vs %d target, %d aligned",
            len(source_segments), len(target_segments), len(alignments),
        )
    return alignments


def invalid_alignments(alignments: list[SegmentAlignment]) -> list[SegmentAlignment]:
    """Alignments that need regeneration."""
    return [a for a in alignments if not a.is_valid]


def improve_alignment(alignment: SegmentAlignment, feedback: str) -> SegmentAlignment:
    """Return a copy with confidence adjusted by reader feedback.

    Args:
        alignment: Alignment to adjust (left untouched)
        feedback: 'correct', 'incorrect' or 'partial'

    Raises:
        ValueError: Unknown feedback label
    """
    try:
        delta = FEEDBACK_DELTAS[feedback]
    except KeyError:
        raise ValueError(
            f"Unknown feedback: {feedback}. Expected one of {', '.join(FEEDBACK_DELTAS)}"
        ) from None

    improved = dataclasses.replace(
        alignment,
        confidence=clamp(alignment.confidence + delta, MIN_CONFIDENCE, MAX_CONFIDENCE),
    )
    return dataclasses.replace(improved, is_valid=validate_alignment(improved))


# ============================================================================
# Scroll synchronisation
# ============================================================================

def calculate_sync_offset(
    scroll_top: float,
    scroll_height: float,
    client_height: float,
    target_scroll_height: float,
    target_client_height: float,
) -> float:
    """Scroll offset in the other pane at the same relative position.

    A source pane that cannot scroll (content fits) maps to offset 0.
    """
    scrollable = scroll_height - client_height
    if scrollable <= 0:
        return 0.0
    ratio = clamp(scroll_top / scrollable, 0.0, 1.0)
    return ratio * max(0.0, target_scroll_height - target_client_height)


def create_scroll_positions(
    alignments: list[SegmentAlignment],
    container_height: float,
) -> dict[str, float]:
    """Evenly spaced offsets for every aligned segment id, both panes."""
    positions: dict[str, float] = {}
    count = len(alignments)
    for index, alignment in enumerate(alignments):
        position = (index / count) * container_height
        positions[alignment.source_segment_id] = position
        positions[alignment.target_segment_id] = position
    return positions


def find_corresponding_segment(
    segment_id: str,
    alignments: list[SegmentAlignment],
    is_source: bool,
) -> Optional[str]:
    """Id of the segment paired with segment_id, or None when unaligned."""
    for alignment in alignments:
        if is_source and alignment.source_segment_id == segment_id:
            return alignment.target_segment_id
        if not is_source and alignment.target_segment_id == segment_id:
            return alignment.source_segment_id
    return None


# ============================================================================
# Word tooltips
# ============================================================================

@dataclass(frozen=True)
class WordTooltip:
    word: str
    translation: str
    explanation: str
    part_of_speech: str
    pronunciation: str
    context: str

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


def detect_part_of_speech(word: str) -> str:
    """Suffix-based guess; 'noun' when nothing matches."""
    w = word.lower()
    if w.endswith("ing"):
        return "verb (present participle)"
    if w.endswith("ed"):
        return "verb (past tense)"
    if w.endswith("ly"):
        return "adverb"
    if w.endswith(("tion", "sion")):
        return "noun"
    if w.endswith(("er", "or")):
        return "noun (agent)"
    return "noun"


def create_word_tooltip(word: str, alignment: WordAlignment, context: str = "") -> WordTooltip:
    return WordTooltip(
        word=word,
        translation=alignment.target_word,
        explanation=f'"{word}" translates to "{alignment.target_word}" in this context.',
        part_of_speech=detect_part_of_speech(word),
        pronunciation=f"/{word.lower()}/",
        context=context,
    )


# ============================================================================
# Bilingual view
# ============================================================================

def segments_from_text(text: str, prefix: str = "tgt") -> list[DocumentSegment]:
    """Segments from blank-line separated text (translator output)."""
    blocks = [b.strip() for b in _BLANK_LINE_RE.split(text) if b.strip()]
    return [
        DocumentSegment.from_text(f"{prefix}-{i}", block, SegmentType.PARAGRAPH, i)
        for i, block in enumerate(blocks)
    ]


def build_bilingual_view(
    source_content: DocumentContent,
    translated_text: str,
    segment_texts: Optional[list[str]] = None,
) -> BilingualView:
    """Segment both sides and align them for the side-by-side reader.

    When ``segment_texts`` (one translation per source segment) is given,
    target segments are built from it index for index, so blank lines or
    empty replies inside one segment never shift the pairs after it.
    Otherwise ``translated_text`` is split on blank lines.

    Translated segments inherit the type of the source segment at the same
    position.
    """
    original = segments_from_structure(source_content.structure, prefix="src")
    if not original and source_content.text.strip():
        original = segments_from_text(source_content.text, prefix="src")

    if segment_texts is not None:
        target = [
            DocumentSegment.from_text(f"tgt-{i}", text.strip(), SegmentType.PARAGRAPH, i)
            for i, text in enumerate(segment_texts)
        ]
    else:
        target = segments_from_text(translated_text, prefix="tgt")

    translated = [
        dataclasses.replace(seg, type=original[i].type) if i < len(original) else seg
        for i, seg in enumerate(target)
    ]
    return BilingualView(
        original_segments=original,
        translated_segments=translated,
        alignments=align(original, translated),
    )
