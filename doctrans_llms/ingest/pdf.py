"""
PDF parsing with PyMuPDF.

This module extracts structured content from PDF bytes:

Approach:
1. PyMuPDF ``get_text("dict")`` extraction with coordinates and font info
2. Lines are grouped into blocks by vertical proximity and font size
3. A heuristic layout detector classifies each block as heading, list
   item, footnote, page furniture (header/footer) or paragraph
4. Image blocks become DocumentImage entries

Heading levels are assigned by font size rank: the largest heading size on
the document is level 1, the next is level 2, and so on.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from doctrans_llms.ingest.base import DocumentParser, StructureBuilder, build_content
from doctrans_llms.models import DocumentContent

# Bit 4 of a span's flags marks bold text
_BOLD_FLAG = 1 << 4

_LIST_MARKER_PATTERNS = [
    re.compile(r'^\s*([-•●○◦▪▸►*])\s+'),           # Bullet points
    re.compile(r'^\s*(\d+[.)])\s+'),                # Numbered: 1. 2)
    re.compile(r'^\s*([a-z][.)])\s+'),              # Lettered: a. b)
    re.compile(r'^\s*([ivxlcdm]+[.)])\s+'),         # Roman: i. ii)
    re.compile(r'^\s*(\([a-z0-9]+\))\s+', re.IGNORECASE),  # Parenthesized: (a) (1)
]
_BULLET_RE = re.compile(r'^[-•●○◦▪▸►*]$')
_FOOTNOTE_MARKER_RE = re.compile(r'^\s*(\d{1,3}|[*†‡])\s*(?=\S)')


class LineKind(Enum):
    PARAGRAPH = auto()
    HEADING = auto()
    LIST_ITEM = auto()
    FOOTNOTE = auto()
    FURNITURE = auto()  # running headers, footers, page numbers


@dataclass
class TextLine:
    """One visual line of text with position and style information."""
    text: str
    x0: float
    y0: float
    x1: float
    y1: float
    font_size: float = 12.0
    is_bold: bool = False


@dataclass
class PageContent:
    """Extracted content from a single PDF page."""
    page_num: int
    width: float
    height: float
    lines: list[TextLine] = field(default_factory=list)
    images: list[dict] = field(default_factory=list)


@dataclass
class TextGroup:
    """Consecutive lines that form one logical block."""
    lines: list[TextLine]
    page: PageContent

    @property
    def text(self) -> str:
        return " ".join(line.text for line in self.lines).strip()

    @property
    def font_size(self) -> float:
        return max(line.font_size for line in self.lines)

    @property
    def is_bold(self) -> bool:
        return all(line.is_bold for line in self.lines)

    @property
    def x0(self) -> float:
        return min(line.x0 for line in self.lines)

    @property
    def y0(self) -> float:
        return min(line.y0 for line in self.lines)


def list_marker(text: str) -> Optional[str]:
    """Return the list marker at the start of text, if any."""
    for pattern in _LIST_MARKER_PATTERNS:
        match = pattern.match(text)
        if match:
            return match.group(1)
    return None


class HeuristicLayoutDetector:
    """Rule-based block classification without ML models.

    Uses heuristics based on:
    - Font size relative to the document body size (headings are larger)
    - Bold, short lines (headings)
    - Leading list markers (list items)
    - Small text near the page bottom with a leading marker (footnotes)
    - Short text inside the top/bottom margins (headers/footers)
    """

    def __init__(
        self,
        body_font_size: float = 11.0,
        heading_size_delta: float = 1.5,
        header_margin: float = 50.0,
        footer_margin: float = 50.0,
    ):
        self.body_font_size = body_font_size
        self.heading_size_delta = heading_size_delta
        self.header_margin = header_margin
        self.footer_margin = footer_margin

    def classify(self, group: TextGroup) -> LineKind:
        text = group.text
        page = group.page

        if len(text) <= 80:
            if group.y0 < self.header_margin:
                return LineKind.FURNITURE
            if group.y0 > page.height - self.footer_margin:
                return LineKind.FURNITURE

        if (
            group.font_size < self.body_font_size - 1.0
            and group.y0 > page.height * 0.75
            and _FOOTNOTE_MARKER_RE.match(text)
        ):
            return LineKind.FOOTNOTE

        if list_marker(text):
            return LineKind.LIST_ITEM

        if len(text) < 200:
            if group.font_size >= self.body_font_size + self.heading_size_delta:
                return LineKind.HEADING
            if group.is_bold and len(text) < 120 and not text.endswith("."):
                return LineKind.HEADING

        return LineKind.PARAGRAPH


class PDFParser(DocumentParser):
    """PDF parser combining PyMuPDF extraction and heuristic layout detection.

    Usage:
        content = PDFParser().parse(pdf_bytes)
        for heading in content.structure.headings:
            print(heading.level, heading.text)
    """

    format_name = "PDF"

    def __init__(
        self,
        layout_detector: Optional[HeuristicLayoutDetector] = None,
        extract_images: bool = True,
        list_indent: float = 18.0,
    ):
        self.layout_detector = layout_detector
        self.extract_images = extract_images
        self.list_indent = list_indent

    def _parse(self, data: bytes) -> DocumentContent:
        import fitz  # PyMuPDF

        with fitz.open(stream=data, filetype="pdf") as doc:
            pages = [self._extract_page(doc[i], i) for i in range(len(doc))]
            meta = doc.metadata or {}

        body_size = self._body_font_size(pages)
        detector = self.layout_detector or HeuristicLayoutDetector(body_font_size=body_size)

        classified: list[tuple[TextGroup, LineKind]] = []
        for page in pages:
            for group in self._group_lines(page.lines, page):
                classified.append((group, detector.classify(group)))

        heading_sizes = sorted(
            {round(g.font_size, 1) for g, kind in classified if kind is LineKind.HEADING},
            reverse=True,
        )

        builder = StructureBuilder()
        footnotes: list[tuple[str, str]] = []
        pending_items: list[tuple[str, int]] = []
        pending_ordered = False
        left_margin = min((g.x0 for g, _ in classified), default=0.0)

        def flush_list():
            nonlocal pending_items
            if pending_items:
                builder.add_list(pending_items, ordered=pending_ordered)
            pending_items = []

        for group, kind in classified:
            text = group.text
            if kind is LineKind.LIST_ITEM:
                marker = list_marker(text) or ""
                ordered = not _BULLET_RE.match(marker)
                if pending_items and ordered != pending_ordered:
                    flush_list()
                pending_ordered = ordered
                level = max(0, int((group.x0 - left_margin) // self.list_indent))
                pending_items.append((text[text.index(marker) + len(marker):], level))
                continue

            flush_list()
            if kind is LineKind.HEADING:
                level = heading_sizes.index(round(group.font_size, 1)) + 1
                builder.add_heading(text, level)
            elif kind is LineKind.FOOTNOTE:
                match = _FOOTNOTE_MARKER_RE.match(text)
                footnotes.append((match.group(1), text[match.end():]))
            elif kind is LineKind.PARAGRAPH:
                builder.add_paragraph(text)

        flush_list()
        for reference, text in footnotes:
            builder.add_footnote(text, reference)

        if self.extract_images:
            for page in pages:
                for n, image in enumerate(page.images):
                    builder.add_image(
                        src=f"page-{page.page_num + 1}-image-{n}",
                        width=image.get("width"),
                        height=image.get("height"),
                    )

        return build_content(builder, title=meta.get("title"), author=meta.get("author"))

    def _extract_page(self, page, page_num: int) -> PageContent:
        """Extract text lines and image blocks from a page."""
        import fitz

        content = PageContent(
            page_num=page_num,
            width=page.rect.width,
            height=page.rect.height,
        )

        blocks = page.get_text("dict", flags=fitz.TEXT_PRESERVE_WHITESPACE)["blocks"]
        for block in blocks:
            if block["type"] == 0:  # Text block
                for line in block.get("lines", []):
                    spans = [s for s in line.get("spans", []) if s.get("text", "").strip()]
                    if not spans:
                        continue
                    x0, y0, x1, y1 = line.get("bbox", (0, 0, 0, 0))
                    content.lines.append(TextLine(
                        text=" ".join(s["text"].strip() for s in spans),
                        x0=x0, y0=y0, x1=x1, y1=y1,
                        font_size=max(s.get("size", 12.0) for s in spans),
                        is_bold=all(
                            (s.get("flags", 0) & _BOLD_FLAG) or "bold" in s.get("font", "").lower()
                            for s in spans
                        ),
                    ))
            elif block["type"] == 1:  # Image block
                content.images.append({
                    "width": block.get("width", 0),
                    "height": block.get("height", 0),
                })

        return content

    def _body_font_size(self, pages: list[PageContent]) -> float:
        """Most common font size weighted by characters."""
        sizes: Counter = Counter()
        for page in pages:
            for line in page.lines:
                sizes[round(line.font_size, 1)] += len(line.text)
        if not sizes:
            return 11.0
        return sizes.most_common(1)[0][0]

    def _group_lines(self, lines: list[TextLine], page: PageContent) -> list[TextGroup]:
        """Group lines that belong to the same logical block.

        Lines join the current group when they are vertically close and share
        a font size; a line starting with a list marker always opens a group.
        """
        if not lines:
            return []

        sorted_lines = sorted(lines, key=lambda l: (round(l.y0, 1), l.x0))
        groups = []
        current = [sorted_lines[0]]

        for line in sorted_lines[1:]:
            prev = current[-1]
            vertical_gap = line.y0 - prev.y1
            same_size = abs(line.font_size - prev.font_size) < 1
            same_weight = line.is_bold == prev.is_bold

            if (
                vertical_gap < line.font_size * 0.8
                and same_size
                and same_weight
                and not list_marker(line.text)
            ):
                current.append(line)
            else:
                groups.append(TextGroup(current, page))
                current = [line]

        groups.append(TextGroup(current, page))
        return groups


def parse_pdf(data: bytes) -> DocumentContent:
    """Convenience function to parse PDF bytes."""
    return PDFParser().parse(data)
