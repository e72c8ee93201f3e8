"""
Tests for the core data models and shared utilities.

Run with: pytest tests/test_models.py -v
"""

import pytest

from doctrans_llms.ingest.base import StructureBuilder, build_content
from doctrans_llms.models import (
    ChangeType,
    DocumentContent,
    DocumentMetadata,
    DocumentSegment,
    ListType,
    SegmentType,
    TextChange,
    segments_from_structure,
)
from doctrans_llms.utils import (
    clamp,
    count_words,
    estimate_page_count,
    length_ratio,
    overlap_ratio,
    split_sentences,
)


def _sample_content():
    builder = StructureBuilder()
    builder.add_heading("Overview", 1)
    builder.add_paragraph("First paragraph of the report.")
    builder.add_list([("Alpha", 0), ("Beta", 1)], ordered=True)
    builder.add_table(["Name", "Value"], [["a", "1"]])
    builder.add_paragraph("Closing words.")
    builder.add_footnote("A note.", "1")
    return build_content(builder, title="Report", author="Ana")


class TestUtils:
    """Tests for the counting and ratio helpers."""

    def test_count_words_ignores_extra_whitespace(self):
        """Only non-empty tokens are counted."""
        assert count_words("  one two\n\tthree  ") == 3
        assert count_words("") == 0

    def test_page_count_heuristic(self):
        """Pages are ceil(words / 250) with a minimum of one."""
        assert estimate_page_count("") == 1
        assert estimate_page_count("word " * 250) == 1
        assert estimate_page_count("word " * 251) == 2

    def test_split_sentences_min_length(self):
        """Short pieces are dropped when a minimum length is given."""
        text = "Hi. This sentence is long enough! Ok?"
        assert split_sentences(text) == ["Hi", "This sentence is long enough", "Ok"]
        assert split_sentences(text, min_length=10) == ["This sentence is long enough"]

    def test_ratios(self):
        """Length and overlap ratios are bounded and handle empties."""
        assert length_ratio(5, 10) == 0.5
        assert length_ratio(0, 10) == 0.0
        assert overlap_ratio(["a", "b"], ["a", "c", "d"]) == pytest.approx(1 / 3)
        assert overlap_ratio([], []) == 0.0
        assert clamp(1.5, 0.1, 1.0) == 1.0
        assert clamp(-1, 0.1, 1.0) == 0.1


class TestContentModel:
    """Tests for DocumentContent and its structure."""

    def test_positions_are_dense_per_kind(self):
        """Each element kind is numbered from zero without gaps."""
        content = _sample_content()
        s = content.structure

        assert [p.position for p in s.paragraphs] == [0, 1]
        assert [h.position for h in s.headings] == [0]
        assert s.lists[0].type == ListType.ORDERED
        assert [item.level for item in s.lists[0].items] == [0, 1]
        assert s.reading_order == [
            ("heading", 0), ("paragraph", 0), ("list", 0),
            ("table", 0), ("paragraph", 1), ("footnote", 0),
        ]

    def test_empty_elements_are_dropped(self):
        """Blank text never produces an element."""
        builder = StructureBuilder()
        builder.add_paragraph("   ")
        builder.add_paragraph("Kept")
        builder.add_list([("", 0)])
        content = build_content(builder)

        assert len(content.structure.paragraphs) == 1
        assert content.structure.paragraphs[0].position == 0
        assert content.structure.lists == []

    def test_metadata_is_derived_from_text(self):
        """Word, character and page counts match the text."""
        content = _sample_content()
        meta = content.metadata

        assert meta.word_count == count_words(content.text)
        assert meta.character_count == len(content.text)
        assert meta.page_count == 1
        assert meta.title == "Report"
        assert meta.author == "Ana"

    def test_json_roundtrip(self):
        """Content survives JSON serialization."""
        content = _sample_content()
        restored = DocumentContent.from_json(content.to_json())

        assert restored == content

    def test_metadata_from_text(self):
        """Missing metadata fields stay None."""
        meta = DocumentMetadata.from_text("one two three")
        assert meta.word_count == 3
        assert meta.language is None


class TestSegments:
    """Tests for segment derivation."""

    def test_segments_follow_reading_order(self):
        """Segments come out in reading order with matching types."""
        segments = segments_from_structure(_sample_content().structure)

        assert [s.id for s in segments] == [f"src-{i}" for i in range(6)]
        assert [s.type for s in segments] == [
            SegmentType.HEADING, SegmentType.PARAGRAPH, SegmentType.LIST,
            SegmentType.TABLE, SegmentType.PARAGRAPH, SegmentType.FOOTNOTE,
        ]
        assert segments[2].text == "Alpha\nBeta"

    def test_word_tokens(self):
        """Segments are tokenised on whitespace."""
        segment = DocumentSegment.from_text("s-0", "Hello  big world")
        assert [t.text for t in segment.word_tokens] == ["Hello", "big", "world"]
        assert segment.word_tokens[2].id == "s-0-w2"

    def test_text_change_to_dict(self):
        """Change type serializes by value."""
        change = TextChange(ChangeType.SPELLING, "teh", "the", 0, "fix")
        assert change.to_dict()["type"] == "spelling"
