"""
Format dispatch and shared building blocks for ingestion.

Every format parser fills a ``StructureBuilder`` and hands it to
``build_content``; this is what guarantees that all formats produce the
same ``DocumentContent`` shape:

- positions are dense, unique and 0-based per element kind
- ``text`` is the reading-order concatenation of all elements
- metadata uses the shared word/page heuristics
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections import Counter
from typing import Optional

from doctrans_llms.errors import DocTransError, ParseFailureError, UnsupportedFormatError
from doctrans_llms.models import (
    DocumentContent,
    DocumentImage,
    DocumentList,
    DocumentMetadata,
    DocumentStructure,
    Footnote,
    Heading,
    ListItem,
    ListType,
    Paragraph,
    Table,
)

logger = logging.getLogger(__name__)

# Paragraphs in plain text are separated by blank lines
_BLANK_LINE_RE = re.compile(r"\n\s*\n")


class StructureBuilder:
    """Accumulates structure elements in reading order.

    Empty elements are dropped so that positions stay dense.
    """

    def __init__(self):
        self.headings: list[Heading] = []
        self.paragraphs: list[Paragraph] = []
        self.lists: list[DocumentList] = []
        self.tables: list[Table] = []
        self.footnotes: list[Footnote] = []
        self.images: list[DocumentImage] = []
        self.reading_order: list[tuple[str, int]] = []
        self._blocks: list[str] = []

    def _record(self, kind: str, position: int, text: str) -> None:
        self.reading_order.append((kind, position))
        self._blocks.append(text)

    def add_heading(self, text: str, level: int = 1) -> None:
        text = text.strip()
        if not text:
            return
        position = len(self.headings)
        level = max(1, min(6, level))
        self.headings.append(Heading(id=f"heading-{position}", level=level, text=text, position=position))
        self._record("heading", position, text)

    def add_paragraph(self, text: str, style: Optional[str] = None) -> None:
        text = text.strip()
        if not text:
            return
        position = len(self.paragraphs)
        self.paragraphs.append(Paragraph(id=f"paragraph-{position}", text=text, position=position, style=style))
        self._record("paragraph", position, text)

    def add_list(self, items: list[tuple[str, int]], ordered: bool = False) -> None:
        """Add a list from ``(text, level)`` pairs."""
        position = len(self.lists)
        list_items: list[ListItem] = []
        for text, level in items:
            if text.strip():
                list_items.append(ListItem(
                    id=f"list-{position}-item-{len(list_items)}", text=text.strip(), level=level,
                ))
        if not list_items:
            return
        lst = DocumentList(
            id=f"list-{position}",
            type=ListType.ORDERED if ordered else ListType.UNORDERED,
            items=list_items,
            position=position,
        )
        self.lists.append(lst)
        self._record("list", position, lst.text)

    def add_table(self, headers: list[str], rows: list[list[str]]) -> None:
        headers = [h.strip() for h in headers]
        rows = [[c.strip() for c in row] for row in rows if row]
        if not any(headers) and not any(any(r) for r in rows):
            return
        position = len(self.tables)
        table = Table(id=f"table-{position}", headers=headers, rows=rows, position=position)
        self.tables.append(table)
        self._record("table", position, table.text)

    def add_footnote(self, text: str, reference: str) -> None:
        text = text.strip()
        if not text:
            return
        position = len(self.footnotes)
        self.footnotes.append(Footnote(
            id=f"footnote-{position}", text=text, reference=str(reference), position=position,
        ))
        self._record("footnote", position, text)

    def add_image(
        self,
        src: str,
        alt: Optional[str] = None,
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> None:
        position = len(self.images)
        self.images.append(DocumentImage(
            id=f"image-{position}", src=src, position=position, alt=alt, width=width, height=height,
        ))

    @property
    def text(self) -> str:
        return "\n\n".join(self._blocks)

    def build(self) -> DocumentStructure:
        return DocumentStructure(
            headings=list(self.headings),
            paragraphs=list(self.paragraphs),
            lists=list(self.lists),
            tables=list(self.tables),
            footnotes=list(self.footnotes),
            reading_order=list(self.reading_order),
        )


def build_content(
    builder: StructureBuilder,
    title: Optional[str] = None,
    author: Optional[str] = None,
) -> DocumentContent:
    """Freeze a builder into a ``DocumentContent`` with derived metadata."""
    text = builder.text
    metadata = DocumentMetadata.from_text(
        text,
        language=detect_language(text),
        author=author or None,
        title=title or None,
    )
    return DocumentContent(
        text=text,
        structure=builder.build(),
        images=list(builder.images),
        metadata=metadata,
    )


# ============================================================================
# Language detection (heuristic)
# ============================================================================

_STOPWORDS = {
    "en": {"the", "and", "of", "to", "is", "in", "that", "it", "with", "for", "this", "are"},
    "fr": {"le", "la", "les", "et", "des", "est", "une", "dans", "que", "pour", "avec", "sur"},
    "es": {"el", "la", "los", "las", "y", "de", "que", "es", "en", "una", "para", "con"},
    "de": {"der", "die", "das", "und", "ist", "nicht", "mit", "ein", "eine", "zu", "auf", "den"},
}


def detect_language(text: str, min_hits: int = 3) -> str:
    """Guess the language by stopword votes; ``"unknown"`` when undecided.

    This is a hint for display only and must not be treated as authoritative.
    """
    words = re.findall(r"[^\W\d_]+", text.lower())
    if not words:
        return "unknown"
    counts = Counter(words)
    scores = {
        lang: sum(counts[w] for w in stopwords)
        for lang, stopwords in _STOPWORDS.items()
    }
    best = max(scores, key=scores.get)
    ranked = sorted(scores.values(), reverse=True)
    if ranked[0] < min_hits or ranked[0] == ranked[1]:
        return "unknown"
    return best


# ============================================================================
# Parsers & dispatch
# ============================================================================

class DocumentParser(ABC):
    """Abstract base for format parsers.

    Parsers take the raw bytes of one file and return a DocumentContent.
    Library errors are converted to ParseFailureError by ``parse``.
    """

    format_name: str = "document"

    def parse(self, data: bytes) -> DocumentContent:
        try:
            return self._parse(data)
        except DocTransError:
            raise
        except Exception as e:
            raise ParseFailureError(f"Failed to parse {self.format_name}: {e}") from e

    @abstractmethod
    def _parse(self, data: bytes) -> DocumentContent:
        pass


class PlainTextParser(DocumentParser):
    """Plain text: paragraphs are separated by blank lines."""

    format_name = "text"

    def _parse(self, data: bytes) -> DocumentContent:
        text = data.decode("utf-8-sig")
        builder = StructureBuilder()
        for block in _BLANK_LINE_RE.split(text):
            builder.add_paragraph(block)
        return build_content(builder)


def _select_parser(filename: str, mime_type: str) -> DocumentParser:
    file_type = (mime_type or "").lower()
    name = (filename or "").lower()

    if "wordprocessingml" in file_type or name.endswith(".docx"):
        from doctrans_llms.ingest.docx import DocxParser
        return DocxParser()
    if "pdf" in file_type or name.endswith(".pdf"):
        from doctrans_llms.ingest.pdf import PDFParser
        return PDFParser()
    if "rtf" in file_type or name.endswith(".rtf"):
        from doctrans_llms.ingest.rtf import RTFParser
        return RTFParser()
    if "opendocument" in file_type or name.endswith(".odt"):
        from doctrans_llms.ingest.odt import ODTParser
        return ODTParser()
    if name.endswith(".doc"):
        raise UnsupportedFormatError(
            "Legacy DOC files are not supported. Please convert to DOCX format."
        )
    if file_type.startswith("text/plain") or name.endswith((".txt", ".md")):
        return PlainTextParser()
    raise UnsupportedFormatError(f"Unsupported file type: {file_type or name or 'unknown'}")


def parse_document(data: bytes, filename: str = "", mime_type: str = "") -> DocumentContent:
    """Parse raw file bytes into a DocumentContent.

    Dispatch is by MIME type first, then by file extension.

    Args:
        data: Raw bytes of the file
        filename: Original file name (used for the extension)
        mime_type: Declared MIME type, may be empty

    Returns:
        DocumentContent with structure, images and metadata

    Raises:
        UnsupportedFormatError: Unknown or legacy format (nothing is parsed)
        ParseFailureError: The bytes are not valid for the detected format
    """
    parser = _select_parser(filename, mime_type)
    logger.debug("Parsing %s as %s (%d bytes)", filename or "<bytes>", parser.format_name, len(data))
    content = parser.parse(data)
    logger.info(
        "Parsed %s: %d words, %d headings, %d paragraphs",
        filename or parser.format_name,
        content.metadata.word_count,
        len(content.structure.headings),
        len(content.structure.paragraphs),
    )
    return content
