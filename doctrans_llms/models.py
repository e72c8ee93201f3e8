"""
Core data models for DocTrans-LLMs.

These models are the canonical, format-independent representation of a
document and of every artifact derived from it (source fixes, domain
classification, translations and bilingual alignments).

Design Philosophy:
- Immutable-ish: content and derived artifacts are frozen dataclasses;
  they are replaced wholesale, never edited in place
- Serializable: all models can be converted to dicts/JSON for the UI layer
- Positions are dense, 0-based indices per element kind
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from doctrans_llms.utils import count_words, estimate_page_count


# ============================================================================
# Enumerations
# ============================================================================

class ListType(str, Enum):
    ORDERED = "ordered"
    UNORDERED = "unordered"


class ChangeType(str, Enum):
    """Kinds of source correction recorded by the cleanser."""
    SPELLING = "spelling"
    PUNCTUATION = "punctuation"
    GRAMMAR = "grammar"
    STYLE = "style"


class DomainType(str, Enum):
    """Coarse subject-matter domains, in classifier declaration order."""
    GENERAL = "general"
    LEGAL = "legal"
    MEDICAL = "medical"
    TECHNICAL = "technical"
    MARKETING = "marketing"
    ACADEMIC = "academic"


class SegmentType(str, Enum):
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    LIST = "list"
    TABLE = "table"
    FOOTNOTE = "footnote"


# ============================================================================
# Content Model
# ============================================================================

@dataclass(frozen=True)
class Heading:
    id: str
    level: int
    text: str
    position: int


@dataclass(frozen=True)
class Paragraph:
    id: str
    text: str
    position: int
    style: Optional[str] = None


@dataclass(frozen=True)
class ListItem:
    id: str
    text: str
    level: int = 0


@dataclass(frozen=True)
class DocumentList:
    """An ordered or bulleted list; items keep their nesting level."""
    id: str
    type: ListType
    items: list[ListItem]
    position: int

    @property
    def text(self) -> str:
        return "\n".join(item.text for item in self.items)


@dataclass(frozen=True)
class Table:
    id: str
    headers: list[str]
    rows: list[list[str]]
    position: int

    @property
    def text(self) -> str:
        lines = [" | ".join(self.headers)] if self.headers else []
        lines.extend(" | ".join(row) for row in self.rows)
        return "\n".join(lines)


@dataclass(frozen=True)
class Footnote:
    id: str
    text: str
    reference: str
    position: int


@dataclass(frozen=True)
class DocumentImage:
    id: str
    src: str
    position: int
    alt: Optional[str] = None
    width: Optional[float] = None
    height: Optional[float] = None


@dataclass(frozen=True)
class DocumentStructure:
    """Ordered element sequences per kind.

    ``reading_order`` lists ``(kind, position)`` pairs in the order the
    elements appear in the source file, so consumers can interleave kinds
    (e.g. a heading followed by its paragraphs). Kinds are "heading",
    "paragraph", "list", "table" and "footnote".
    """
    headings: list[Heading] = field(default_factory=list)
    paragraphs: list[Paragraph] = field(default_factory=list)
    lists: list[DocumentList] = field(default_factory=list)
    tables: list[Table] = field(default_factory=list)
    footnotes: list[Footnote] = field(default_factory=list)
    reading_order: list[tuple[str, int]] = field(default_factory=list)

    def element(self, kind: str, position: int):
        """Return the element of ``kind`` at ``position``."""
        collections = {
            "heading": self.headings,
            "paragraph": self.paragraphs,
            "list": self.lists,
            "table": self.tables,
            "footnote": self.footnotes,
        }
        return collections[kind][position]

    def to_dict(self) -> dict:
        return {
            "headings": [vars(h) for h in self.headings],
            "paragraphs": [vars(p) for p in self.paragraphs],
            "lists": [
                {
                    "id": lst.id,
                    "type": lst.type.value,
                    "items": [vars(i) for i in lst.items],
                    "position": lst.position,
                }
                for lst in self.lists
            ],
            "tables": [vars(t) for t in self.tables],
            "footnotes": [vars(f) for f in self.footnotes],
            "reading_order": [list(pair) for pair in self.reading_order],
        }

    @classmethod
    def from_dict(cls, d: dict) -> DocumentStructure:
        return cls(
            headings=[Heading(**h) for h in d.get("headings", [])],
            paragraphs=[Paragraph(**p) for p in d.get("paragraphs", [])],
            lists=[
                DocumentList(
                    id=lst["id"],
                    type=ListType(lst["type"]),
                    items=[ListItem(**i) for i in lst.get("items", [])],
                    position=lst["position"],
                )
                for lst in d.get("lists", [])
            ],
            tables=[Table(**t) for t in d.get("tables", [])],
            footnotes=[Footnote(**f) for f in d.get("footnotes", [])],
            reading_order=[tuple(pair) for pair in d.get("reading_order", [])],
        )


@dataclass(frozen=True)
class DocumentMetadata:
    """Derived document statistics. Recompute with ``from_text`` when text changes."""
    page_count: int
    word_count: int
    character_count: int
    language: Optional[str] = None
    author: Optional[str] = None
    title: Optional[str] = None

    @classmethod
    def from_text(
        cls,
        text: str,
        language: Optional[str] = None,
        author: Optional[str] = None,
        title: Optional[str] = None,
    ) -> DocumentMetadata:
        return cls(
            page_count=estimate_page_count(text),
            word_count=count_words(text),
            character_count=len(text),
            language=language,
            author=author,
            title=title,
        )


@dataclass(frozen=True)
class DocumentContent:
    """A parsed document: full text, structure, images and metadata.

    Created once by ingestion; a re-ingested file produces a new instance.
    """
    text: str
    structure: DocumentStructure
    images: list[DocumentImage] = field(default_factory=list)
    metadata: Optional[DocumentMetadata] = None

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "structure": self.structure.to_dict(),
            "images": [vars(i) for i in self.images],
            "metadata": vars(self.metadata) if self.metadata else None,
        }

    @classmethod
    def from_dict(cls, d: dict) -> DocumentContent:
        return cls(
            text=d["text"],
            structure=DocumentStructure.from_dict(d.get("structure", {})),
            images=[DocumentImage(**i) for i in d.get("images", [])],
            metadata=DocumentMetadata(**d["metadata"]) if d.get("metadata") else None,
        )

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_json(cls, json_str: str) -> DocumentContent:
        return cls.from_dict(json.loads(json_str))

    def summary(self) -> str:
        """Return a human-readable summary of the document."""
        s = self.structure
        meta = self.metadata
        return (
            f"Document '{(meta.title if meta else None) or 'untitled'}'\n"
            f"  Words: {meta.word_count if meta else 0}, "
            f"pages: {meta.page_count if meta else 0}\n"
            f"  Headings: {len(s.headings)}, paragraphs: {len(s.paragraphs)}, "
            f"lists: {len(s.lists)}, tables: {len(s.tables)}, "
            f"footnotes: {len(s.footnotes)}, images: {len(self.images)}"
        )


# ============================================================================
# Source Fixes
# ============================================================================

@dataclass(frozen=True)
class TextChange:
    """One recorded substitution made by the source cleanser.

    Attributes:
        type: Kind of correction
        original: Substring that was replaced
        corrected: Replacement text
        position: Offset of ``corrected`` in the text right after this substitution
        explanation: Short, fixed description of the rule
    """
    type: ChangeType
    original: str
    corrected: str
    position: int
    explanation: str

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "original": self.original,
            "corrected": self.corrected,
            "position": self.position,
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class SourceFixes:
    original_text: str
    corrected_text: str
    changes: list[TextChange]
    explanation: str

    @property
    def was_changed(self) -> bool:
        return len(self.changes) > 0

    def to_dict(self) -> dict:
        return {
            "original_text": self.original_text,
            "corrected_text": self.corrected_text,
            "changes": [c.to_dict() for c in self.changes],
            "explanation": self.explanation,
        }


# ============================================================================
# Domain & Summary
# ============================================================================

@dataclass(frozen=True)
class DocumentDomain:
    type: DomainType
    confidence: float
    terminology: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "confidence": self.confidence,
            "terminology": dict(self.terminology),
        }


@dataclass(frozen=True)
class DocumentSummary:
    main_ideas: list[str]
    topics: list[str]
    key_terms: list[str]
    abstract: str

    def to_dict(self) -> dict:
        return {
            "main_ideas": list(self.main_ideas),
            "topics": list(self.topics),
            "key_terms": list(self.key_terms),
            "abstract": self.abstract,
        }


# ============================================================================
# Translation & Alignment
# ============================================================================

@dataclass(frozen=True)
class WordAlignment:
    source_word: str
    target_word: str
    source_position: int
    target_position: int
    confidence: float

    def to_dict(self) -> dict:
        return vars(self).copy()


@dataclass(frozen=True)
class Translation:
    """One translation of one document by one provider.

    Several Translations may coexist for the same document when providers
    are compared side by side.
    """
    original_text: str
    translated_text: str
    target_language: str
    source_language: str
    confidence: float
    word_alignments: list[WordAlignment] = field(default_factory=list)
    provider: Optional[str] = None
    model: Optional[str] = None
    tokens_used: Optional[int] = None
    # One entry per source segment, in reading order
    segment_texts: list[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "original_text": self.original_text,
            "translated_text": self.translated_text,
            "segment_texts": list(self.segment_texts),
            "target_language": self.target_language,
            "source_language": self.source_language,
            "confidence": self.confidence,
            "word_alignments": [w.to_dict() for w in self.word_alignments],
            "provider": self.provider,
            "model": self.model,
            "tokens_used": self.tokens_used,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class WordToken:
    id: str
    text: str
    position: int


@dataclass(frozen=True)
class DocumentSegment:
    """An alignable unit of text (paragraph, heading, list, ...)."""
    id: str
    text: str
    type: SegmentType
    position: int
    word_tokens: list[WordToken] = field(default_factory=list)

    @classmethod
    def from_text(
        cls,
        segment_id: str,
        text: str,
        segment_type: SegmentType = SegmentType.PARAGRAPH,
        position: int = 0,
    ) -> DocumentSegment:
        """Create a segment, tokenising on whitespace."""
        tokens = [
            WordToken(id=f"{segment_id}-w{i}", text=word, position=i)
            for i, word in enumerate(text.split())
        ]
        return cls(
            id=segment_id,
            text=text,
            type=segment_type,
            position=position,
            word_tokens=tokens,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "type": self.type.value,
            "position": self.position,
            "word_tokens": [vars(t) for t in self.word_tokens],
        }


@dataclass(frozen=True)
class SegmentAlignment:
    """Positional pairing of one source and one target segment.

    ``is_valid`` is False when the pairing is weak (confidence <= 0.3) or has
    no word alignments; such alignments are kept so callers can regenerate them.
    """
    source_segment_id: str
    target_segment_id: str
    confidence: float
    word_alignments: list[WordAlignment] = field(default_factory=list)
    is_valid: bool = True

    def to_dict(self) -> dict:
        return {
            "source_segment_id": self.source_segment_id,
            "target_segment_id": self.target_segment_id,
            "confidence": self.confidence,
            "word_alignments": [w.to_dict() for w in self.word_alignments],
            "is_valid": self.is_valid,
        }


@dataclass(frozen=True)
class BilingualView:
    """Payload for the side-by-side reader."""
    original_segments: list[DocumentSegment]
    translated_segments: list[DocumentSegment]
    alignments: list[SegmentAlignment]

    def to_dict(self) -> dict:
        return {
            "original_segments": [s.to_dict() for s in self.original_segments],
            "translated_segments": [s.to_dict() for s in self.translated_segments],
            "alignments": [a.to_dict() for a in self.alignments],
        }


# ============================================================================
# Structure → Segments
# ============================================================================

_KIND_TO_SEGMENT = {
    "heading": SegmentType.HEADING,
    "paragraph": SegmentType.PARAGRAPH,
    "list": SegmentType.LIST,
    "table": SegmentType.TABLE,
    "footnote": SegmentType.FOOTNOTE,
}


def _default_reading_order(structure: DocumentStructure) -> list[tuple[str, int]]:
    order: list[tuple[str, int]] = []
    order.extend(("heading", h.position) for h in structure.headings)
    order.extend(("paragraph", p.position) for p in structure.paragraphs)
    order.extend(("list", lst.position) for lst in structure.lists)
    order.extend(("table", t.position) for t in structure.tables)
    order.extend(("footnote", f.position) for f in structure.footnotes)
    return order


def segments_from_structure(
    structure: DocumentStructure,
    prefix: str = "src",
) -> list[DocumentSegment]:
    """Derive alignment segments from a structure, in reading order.

    Lists and tables become one segment each (items/rows joined by newlines).
    Empty elements are skipped; segment positions stay dense.
    """
    order = structure.reading_order or _default_reading_order(structure)
    segments: list[DocumentSegment] = []
    for kind, position in order:
        text = structure.element(kind, position).text.strip()
        if not text:
            continue
        index = len(segments)
        segments.append(DocumentSegment.from_text(
            segment_id=f"{prefix}-{index}",
            text=text,
            segment_type=_KIND_TO_SEGMENT[kind],
            position=index,
        ))
    return segments
