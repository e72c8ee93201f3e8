"""
ODT (OpenDocument Text) parsing.

An ODT file is a zip package; the body lives in ``content.xml`` and the
document properties in ``meta.xml``. The body is walked in document order:

- ``text:h`` → heading (``text:outline-level``, default 1)
- ``text:p`` → paragraph (``text:style-name`` kept as style)
- ``text:list`` → list; nested lists raise the item level, and the list is
  ordered when its list style defines ``text:list-level-style-number``
- ``table:table`` → table, first row as headers
- ``text:note`` → footnote (``text:note-citation`` is the reference)
- ``draw:image`` → image (``xlink:href``), size from the enclosing frame
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

NS = {
    "office": "urn:oasis:names:tc:opendocument:xmlns:office:1.0",
    "text": "urn:oasis:names:tc:opendocument:xmlns:text:1.0",
    "table": "urn:oasis:names:tc:opendocument:xmlns:table:1.0",
    "draw": "urn:oasis:names:tc:opendocument:xmlns:drawing:1.0",
    "svg": "urn:oasis:names:tc:opendocument:xmlns:svg-compatible:1.0",
    "xlink": "http://www.w3.org/1999/xlink",
    "style": "urn:oasis:names:tc:opendocument:xmlns:style:1.0",
    "dc": "http://purl.org/dc/elements/1.1/",
    "meta": "urn:oasis:names:tc:opendocument:xmlns:meta:1.0",
}

_LENGTH_RE = re.compile(r"^\s*([\d.]+)\s*(pt|in|cm|mm|px)?\s*$")
_TO_POINTS = {"pt": 1.0, "in": 72.0, "cm": 72.0 / 2.54, "mm": 72.0 / 25.4, "px": 0.75, None: 1.0}


def _q(name: str) -> str:
    """Expand ``prefix:local`` into ElementTree's ``{uri}local`` form."""
    prefix, local = name.split(":")
    return f"{{{NS[prefix]}}}{local}"


def _length_pt(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    match = _LENGTH_RE.match(value)
    if not match:
        return None
    return round(float(match.group(1)) * _TO_POINTS[match.group(2)], 2)


class ODTParser(DocumentParser):
    """Parser for OpenDocument text packages."""

    format_name = "ODT"

    def _parse(self, data: bytes) -> DocumentContent:
        if not zipfile.is_zipfile(io.BytesIO(data)):
            raise ParseFailureError("Failed to parse ODT: file is not a zip package")

        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            names = archive.namelist()
            if "content.xml" not in names:
                raise ParseFailureError("Failed to parse ODT: content.xml is missing")
            content_root = ET.fromstring(archive.read("content.xml"))
            meta_root = ET.fromstring(archive.read("meta.xml")) if "meta.xml" in names else None
            styles_root = ET.fromstring(archive.read("styles.xml")) if "styles.xml" in names else None

        self._ordered_styles = self._numbered_list_styles(content_root, styles_root)
        self._footnotes: list[tuple[str, str]] = []
        self._images: list[tuple[str, Optional[str], Optional[float], Optional[float]]] = []
        builder = StructureBuilder()

        body = content_root.find("office:body/office:text", NS)
        if body is None:
            raise ParseFailureError("Failed to parse ODT: document has no text body")

        for child in body:
            self._walk_block(child, builder)

        for reference, text in self._footnotes:
            builder.add_footnote(text, reference)
        for src, alt, width, height in self._images:
            builder.add_image(src=src, alt=alt, width=width, height=height)

        title = author = None
        if meta_root is not None:
            title = meta_root.findtext(".//dc:title", namespaces=NS)
            author = (
                meta_root.findtext(".//meta:initial-creator", namespaces=NS)
                or meta_root.findtext(".//dc:creator", namespaces=NS)
            )
        return build_content(builder, title=title, author=author)

    def _numbered_list_styles(self, *roots) -> set[str]:
        """Names of list styles whose first level is numbered."""
        ordered = set()
        for root in roots:
            if root is None:
                continue
            for style in root.iter(_q("text:list-style")):
                first = next(iter(style), None)
                if first is not None and first.tag == _q("text:list-level-style-number"):
                    ordered.add(style.get(_q("style:name")))
        return ordered

    def _walk_block(self, element, builder: StructureBuilder) -> None:
        tag = element.tag
        if tag == _q("text:h"):
            level = int(element.get(_q("text:outline-level"), "1") or 1)
            builder.add_heading(self._inline_text(element), level)
        elif tag == _q("text:p"):
            builder.add_paragraph(
                self._inline_text(element),
                style=element.get(_q("text:style-name")),
            )
        elif tag == _q("text:list"):
            items: list[tuple[str, int]] = []
            self._collect_list(element, 0, items)
            style = element.get(_q("text:style-name"))
            builder.add_list(items, ordered=style in self._ordered_styles)
        elif tag == _q("table:table"):
            rows = []
            for row in element.iter(_q("table:table-row")):
                cells = [
                    " ".join(self._inline_text(p) for p in cell.iter(_q("text:p")))
                    for cell in row.findall("table:table-cell", NS)
                ]
                rows.append(cells)
            if rows:
                builder.add_table(rows[0], rows[1:])
        elif tag == _q("text:section"):
            for child in element:
                self._walk_block(child, builder)

    def _collect_list(self, element, level: int, items: list[tuple[str, int]]) -> None:
        for item in element.findall("text:list-item", NS):
            for child in item:
                if child.tag in (_q("text:p"), _q("text:h")):
                    items.append((self._inline_text(child), level))
                elif child.tag == _q("text:list"):
                    self._collect_list(child, level + 1, items)

    def _inline_text(self, element) -> str:
        """Text of a paragraph-like element; notes and frames are collected aside."""
        parts: list[str] = [element.text or ""]
        for child in element:
            tag = child.tag
            if tag == _q("text:note"):
                citation = child.findtext("text:note-citation", default="", namespaces=NS)
                note_body = child.find("text:note-body", NS)
                note_text = ""
                if note_body is not None:
                    note_text = " ".join(self._inline_text(p) for p in note_body)
                self._footnotes.append((citation or str(len(self._footnotes) + 1), note_text))
            elif tag == _q("draw:frame"):
                self._collect_frame(child)
            elif tag == _q("text:s"):
                parts.append(" " * int(child.get(_q("text:c"), "1") or 1))
            elif tag in (_q("text:tab"), _q("text:line-break")):
                parts.append(" ")
            else:
                parts.append(self._inline_text(child))
            parts.append(child.tail or "")
        return " ".join("".join(parts).split())

    def _collect_frame(self, frame) -> None:
        image = frame.find("draw:image", NS)
        if image is None:
            return
        alt = frame.findtext("svg:title", namespaces=NS) or frame.findtext("svg:desc", namespaces=NS)
        self._images.append((
            image.get(_q("xlink:href"), ""),
            alt or frame.get(_q("draw:name")),
            _length_pt(frame.get(_q("svg:width"))),
            _length_pt(frame.get(_q("svg:height"))),
        ))


def parse_odt(data: bytes) -> DocumentContent:
    """Convenience function to parse ODT bytes."""
    return ODTParser().parse(data)
