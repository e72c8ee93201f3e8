"""
DOCX parsing with python-docx.

Walks the document body in order so that headings, paragraphs, lists and
tables keep their reading order:

- ``Title`` / ``Heading N`` styles → headings (Title is level 1)
- ``List Bullet*`` / ``List Number*`` styles or numbering properties → lists;
  consecutive list paragraphs of the same kind are grouped
- ``w:tbl`` → tables, first row as headers
- ``word/footnotes.xml`` → footnotes (python-docx does not expose them)
- inline pictures → images, referenced by their package part name
"""

from __future__ import annotations

import io
import re
import zipfile
import xml.etree.ElementTree as ET
from typing import Optional

from doctrans_llms.errors import ParseFailureError
from doctrans_llms.ingest.base import DocumentParser, StructureBuilder, build_content
from doctrans_llms.models import DocumentContent

_W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
_HEADING_STYLE_RE = re.compile(r"^heading\s*(\d)", re.IGNORECASE)
_STYLE_LEVEL_RE = re.compile(r"(\d+)\s*$")


def _heading_level(style_name: str) -> Optional[int]:
    """Return the heading level for a style name, or None for body text."""
    if style_name.lower() == "title":
        return 1
    match = _HEADING_STYLE_RE.match(style_name)
    return int(match.group(1)) if match else None


def _list_info(paragraph) -> Optional[tuple[bool, int]]:
    """Return ``(ordered, level)`` when the paragraph is a list item."""
    style_name = paragraph.style.name if paragraph.style is not None else ""
    lowered = style_name.lower()
    p_pr = paragraph._p.pPr
    num_pr = p_pr.numPr if p_pr is not None else None

    if lowered.startswith("list bullet") or lowered.startswith("list number"):
        ordered = lowered.startswith("list number")
        match = _STYLE_LEVEL_RE.search(style_name)
        level = int(match.group(1)) - 1 if match else 0
        return ordered, level

    if num_pr is not None:
        ilvl = num_pr.ilvl
        level = int(ilvl.val) if ilvl is not None and ilvl.val is not None else 0
        return False, level

    return None


def _read_footnotes(data: bytes) -> list[tuple[str, str]]:
    """Read ``(reference, text)`` pairs from word/footnotes.xml."""
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        if "word/footnotes.xml" not in archive.namelist():
            return []
        root = ET.fromstring(archive.read("word/footnotes.xml"))

    footnotes = []
    for note in root.iter(f"{{{_W_NS}}}footnote"):
        # Separator entries carry a w:type attribute
        if note.get(f"{{{_W_NS}}}type"):
            continue
        text = "".join(t.text or "" for t in note.iter(f"{{{_W_NS}}}t"))
        footnotes.append((note.get(f"{{{_W_NS}}}id", ""), text))
    return footnotes


class DocxParser(DocumentParser):
    """Parser for Office Open XML word-processing documents."""

    format_name = "DOCX"

    def _parse(self, data: bytes) -> DocumentContent:
        from docx import Document as open_docx
        from docx.oxml.ns import qn
        from docx.table import Table as DocxTable
        from docx.text.paragraph import Paragraph as DocxParagraph

        if not zipfile.is_zipfile(io.BytesIO(data)):
            raise ParseFailureError("Failed to parse DOCX: file is not a zip package")

        document = open_docx(io.BytesIO(data))
        builder = StructureBuilder()

        pending_items: list[tuple[str, int]] = []
        pending_ordered = False

        def flush_list():
            nonlocal pending_items
            if pending_items:
                builder.add_list(pending_items, ordered=pending_ordered)
            pending_items = []

        for child in document.element.body.iterchildren():
            if child.tag == qn("w:p"):
                paragraph = DocxParagraph(child, document)
                style_name = paragraph.style.name if paragraph.style is not None else ""
                list_info = _list_info(paragraph)

                if list_info is not None:
                    ordered, level = list_info
                    if pending_items and ordered != pending_ordered:
                        flush_list()
                    pending_ordered = ordered
                    pending_items.append((paragraph.text, level))
                    continue

                flush_list()
                level = _heading_level(style_name)
                if level is not None:
                    builder.add_heading(paragraph.text, level)
                else:
                    builder.add_paragraph(paragraph.text, style=style_name or None)

            elif child.tag == qn("w:tbl"):
                flush_list()
                table = DocxTable(child, document)
                rows = [[cell.text for cell in row.cells] for row in table.rows]
                if rows:
                    builder.add_table(rows[0], rows[1:])

        flush_list()

        for reference, text in _read_footnotes(data):
            builder.add_footnote(text, reference)

        related = document.part.related_parts
        for shape in document.inline_shapes:
            inline = shape._inline
            embeds = inline.xpath(".//a:blip/@r:embed")
            src = str(related[embeds[0]].partname) if embeds and embeds[0] in related else ""
            doc_pr = inline.docPr
            builder.add_image(
                src=src,
                alt=(doc_pr.get("descr") or doc_pr.get("name")) if doc_pr is not None else None,
                width=shape.width.pt if shape.width is not None else None,
                height=shape.height.pt if shape.height is not None else None,
            )

        props = document.core_properties
        return build_content(builder, title=props.title, author=props.author)
