"""
Tests for document ingestion.

Every supported format is generated in memory (python-docx for DOCX,
PyMuPDF for PDF, zipfile for ODT) so the tests need no fixture files.

Run with: pytest tests/test_ingest.py -v
"""

import io
import zipfile

import pytest

from doctrans_llms.errors import ParseFailureError, UnsupportedFormatError
from doctrans_llms.ingest import detect_language, parse_document
from doctrans_llms.ingest.pdf import HeuristicLayoutDetector, LineKind, PageContent, TextGroup, TextLine, list_marker
from doctrans_llms.models import ListType


# ============================================================================
# Builders
# ============================================================================

def make_docx() -> bytes:
    from docx import Document

    doc = Document()
    doc.core_properties.title = "Annual Report"
    doc.core_properties.author = "Jane Doe"
    doc.add_heading("Introduction", level=1)
    doc.add_paragraph("The company grew steadily during the year.")
    doc.add_paragraph("First goal", style="List Bullet")
    doc.add_paragraph("Second goal", style="List Bullet")
    doc.add_heading("Results", level=2)
    table = doc.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Region"
    table.cell(0, 1).text = "Sales"
    table.cell(1, 0).text = "North"
    table.cell(1, 1).text = "120"
    doc.add_paragraph("Steps", style="List Number")

    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def make_pdf() -> bytes:
    import fitz

    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 100), "Introduction", fontsize=20)
    page.insert_text((72, 160), "This is the body text of the sample document.", fontsize=11)
    page.insert_text((72, 260), "Another paragraph follows here with more words.", fontsize=11)
    doc.set_metadata({"title": "Sample PDF", "author": "Tester"})
    data = doc.tobytes()
    doc.close()
    return data


ODT_CONTENT = """<?xml version="1.0" encoding="UTF-8"?>
<office:document-content
    xmlns:office="urn:oasis:names:tc:opendocument:xmlns:office:1.0"
    xmlns:text="urn:oasis:names:tc:opendocument:xmlns:text:1.0"
    xmlns:table="urn:oasis:names:tc:opendocument:xmlns:table:1.0"
    xmlns:draw="urn:oasis:names:tc:opendocument:xmlns:drawing:1.0"
    xmlns:svg="urn:oasis:names:tc:opendocument:xmlns:svg-compatible:1.0"
    xmlns:xlink="http://www.w3.org/1999/xlink"
    xmlns:style="urn:oasis:names:tc:opendocument:xmlns:style:1.0">
  <office:automatic-styles>
    <text:list-style style:name="L1">
      <text:list-level-style-number text:level="1"/>
    </text:list-style>
  </office:automatic-styles>
  <office:body>
    <office:text>
      <text:h text:outline-level="1">Methods</text:h>
      <text:p text:style-name="Standard">We measured<text:s/> twice<text:note text:note-class="footnote"><text:note-citation>1</text:note-citation><text:note-body><text:p>See appendix.</text:p></text:note-body></text:note>.</text:p>
      <text:list text:style-name="L1">
        <text:list-item><text:p>Collect</text:p></text:list-item>
        <text:list-item>
          <text:p>Clean</text:p>
          <text:list><text:list-item><text:p>Deduplicate</text:p></text:list-item></text:list>
        </text:list-item>
      </text:list>
      <table:table>
        <table:table-row>
          <table:table-cell><text:p>Metric</text:p></table:table-cell>
          <table:table-cell><text:p>Value</text:p></table:table-cell>
        </table:table-row>
        <table:table-row>
          <table:table-cell><text:p>Mean</text:p></table:table-cell>
          <table:table-cell><text:p>4.2</text:p></table:table-cell>
        </table:table-row>
      </table:table>
      <text:p><draw:frame draw:name="Chart" svg:width="2in" svg:height="1in"><draw:image xlink:href="Pictures/chart.png"/></draw:frame></text:p>
    </office:text>
  </office:body>
</office:document-content>
"""

ODT_META = """<?xml version="1.0" encoding="UTF-8"?>
<office:document-meta
    xmlns:office="urn:oasis:names:tc:opendocument:xmlns:office:1.0"
    xmlns:dc="http://purl.org/dc/elements/1.1/"
    xmlns:meta="urn:oasis:names:tc:opendocument:xmlns:meta:1.0">
  <office:meta>
    <dc:title>Lab Notes</dc:title>
    <meta:initial-creator>Sam Lee</meta:initial-creator>
  </office:meta>
</office:document-meta>
"""


def make_odt() -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("mimetype", "application/vnd.oasis.opendocument.text")
        archive.writestr("content.xml", ODT_CONTENT)
        archive.writestr("meta.xml", ODT_META)
    return buffer.getvalue()


RTF_SAMPLE = rb"""{\rtf1\ansi\deff0{\fonttbl{\f0 Times New Roman;}}{\info{\title Quarterly Report}{\author Ana}}
\pard\outlinelevel0 Overview\par
\pard This is the first paragraph with caf\'e9 and na\u239?ve text.\par
\pard{\listtext 1.\tab}\ls1\ilvl0 First step\par
\pard{\listtext 2.\tab}\ls1\ilvl0 Second step\par
\pard\intbl Name\cell Value\cell\row
\pard\intbl Alpha\cell 1\cell\row
\pard Closing text{\super\chftn}{\footnote\pard Source: annual survey.}\par
}
"""


# ============================================================================
# Dispatch
# ============================================================================

class TestDispatch:
    """Tests for format selection and input errors."""

    def test_plain_text_paragraphs(self):
        """Plain text splits into paragraphs on blank lines."""
        content = parse_document(b"First block.\n\nSecond block.\n\n\n", "notes.txt")

        assert [p.text for p in content.structure.paragraphs] == ["First block.", "Second block."]
        assert content.text == "First block.\n\nSecond block."

    def test_mime_type_wins_over_extension(self):
        """A declared MIME type is used before the file name."""
        content = parse_document(b"Hello there.", "upload.bin", "text/plain")
        assert content.structure.paragraphs[0].text == "Hello there."

    def test_legacy_doc_is_rejected(self):
        """Legacy .doc files are refused with a conversion hint."""
        with pytest.raises(UnsupportedFormatError, match="convert to DOCX"):
            parse_document(b"\xd0\xcf\x11\xe0", "old.doc")

    def test_unknown_format(self):
        """Unknown types raise UnsupportedFormatError."""
        with pytest.raises(UnsupportedFormatError):
            parse_document(b"data", "image.png", "image/png")

    @pytest.mark.parametrize("filename", ["broken.docx", "broken.pdf", "broken.odt", "broken.rtf"])
    def test_malformed_bytes(self, filename):
        """Garbage bytes of a supported format raise ParseFailureError."""
        with pytest.raises(ParseFailureError):
            parse_document(b"this is not a real document", filename)

    def test_unbalanced_rtf(self):
        """RTF with unbalanced braces fails to parse."""
        with pytest.raises(ParseFailureError, match="unbalanced"):
            parse_document(rb"{\rtf1 {\b bold text\par", "x.rtf")

    def test_language_hint(self):
        """Stopword voting guesses the language or returns unknown."""
        assert detect_language("The cat and the dog sat in the garden with the bird.") == "en"
        assert detect_language("El gato y el perro de la casa con los niños.") == "es"
        assert detect_language("12345") == "unknown"


# ============================================================================
# Formats
# ============================================================================

class TestDocx:
    """Tests for the python-docx parser."""

    def test_structure(self):
        """Headings, paragraphs, lists and tables are recognised in order."""
        content = parse_document(make_docx(), "report.docx")
        s = content.structure

        assert [(h.level, h.text) for h in s.headings] == [(1, "Introduction"), (2, "Results")]
        assert s.paragraphs[0].text == "The company grew steadily during the year."
        assert len(s.lists) == 2
        assert s.lists[0].type == ListType.UNORDERED
        assert [i.text for i in s.lists[0].items] == ["First goal", "Second goal"]
        assert s.lists[1].type == ListType.ORDERED
        assert s.tables[0].headers == ["Region", "Sales"]
        assert s.tables[0].rows == [["North", "120"]]
        assert [kind for kind, _ in s.reading_order] == [
            "heading", "paragraph", "list", "heading", "table", "list",
        ]

    def test_metadata(self):
        """Core properties give title and author."""
        meta = parse_document(make_docx(), "report.docx").metadata
        assert meta.title == "Annual Report"
        assert meta.author == "Jane Doe"
        assert meta.page_count == 1


class TestPdf:
    """Tests for the PyMuPDF parser."""

    def test_heading_and_paragraphs(self):
        """Large text becomes a heading, body lines become paragraphs."""
        content = parse_document(make_pdf(), "sample.pdf")
        s = content.structure

        assert [h.text for h in s.headings] == ["Introduction"]
        assert s.headings[0].level == 1
        assert [p.text for p in s.paragraphs] == [
            "This is the body text of the sample document.",
            "Another paragraph follows here with more words.",
        ]
        assert content.metadata.title == "Sample PDF"
        assert content.metadata.author == "Tester"

    def test_list_marker(self):
        """Bullets and numbers are recognised as list markers."""
        assert list_marker("• item") is not None
        assert list_marker("1. item") is not None
        assert list_marker("plain text") is None

    def test_layout_rules(self):
        """The heuristic detector separates furniture, headings and body."""
        page = PageContent(page_num=0, width=600, height=800)
        detector = HeuristicLayoutDetector(body_font_size=11)

        def group(text, y, size=11, bold=False):
            return TextGroup([TextLine(text, 72, y, 500, y + size, size, bold)], page)

        assert detector.classify(group("Page 3", 780)) is LineKind.FURNITURE
        assert detector.classify(group("Big Title", 200, size=18)) is LineKind.HEADING
        assert detector.classify(group("Bold Section", 200, bold=True)) is LineKind.HEADING
        assert detector.classify(group("A normal sentence in the body.", 300)) is LineKind.PARAGRAPH


class TestOdt:
    """Tests for the OpenDocument parser."""

    def test_structure(self):
        """Headings, lists, tables, notes and frames are all extracted."""
        content = parse_document(make_odt(), "notes.odt")
        s = content.structure

        assert [(h.level, h.text) for h in s.headings] == [(1, "Methods")]
        assert s.paragraphs[0].text == "We measured twice."
        assert s.paragraphs[0].style == "Standard"
        assert s.lists[0].type == ListType.ORDERED
        assert [(i.text, i.level) for i in s.lists[0].items] == [
            ("Collect", 0), ("Clean", 0), ("Deduplicate", 1),
        ]
        assert s.tables[0].headers == ["Metric", "Value"]
        assert s.tables[0].rows == [["Mean", "4.2"]]
        assert [(f.reference, f.text) for f in s.footnotes] == [("1", "See appendix.")]

    def test_images_and_metadata(self):
        """Frames become images sized in points; meta.xml gives title and author."""
        content = parse_document(make_odt(), "notes.odt")
        image = content.images[0]

        assert image.src == "Pictures/chart.png"
        assert image.alt == "Chart"
        assert image.width == 144.0
        assert image.height == 72.0
        assert content.metadata.title == "Lab Notes"
        assert content.metadata.author == "Sam Lee"

    def test_missing_content_xml(self):
        """A zip without content.xml is not an ODT."""
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("mimetype", "application/vnd.oasis.opendocument.text")
        with pytest.raises(ParseFailureError, match="content.xml"):
            parse_document(buffer.getvalue(), "empty.odt")


class TestRtf:
    """Tests for the RTF parser."""

    def test_structure(self):
        """Outline levels, lists, tables and footnotes are recognised."""
        content = parse_document(RTF_SAMPLE, "report.rtf")
        s = content.structure

        assert [(h.level, h.text) for h in s.headings] == [(1, "Overview")]
        assert s.paragraphs[0].text == "This is the first paragraph with café and naïve text."
        assert s.paragraphs[1].text == "Closing text"
        assert s.lists[0].type == ListType.ORDERED
        assert [i.text for i in s.lists[0].items] == ["First step", "Second step"]
        assert s.tables[0].headers == ["Name", "Value"]
        assert s.tables[0].rows == [["Alpha", "1"]]
        assert [(f.reference, f.text) for f in s.footnotes] == [("1", "Source: annual survey.")]
        assert [kind for kind, _ in s.reading_order] == [
            "heading", "paragraph", "list", "table", "paragraph", "footnote",
        ]

    def test_font_table_is_not_text(self):
        """Destination groups like the font table never leak into the text."""
        content = parse_document(RTF_SAMPLE, "report.rtf")
        assert "Times New Roman" not in content.text

    def test_metadata(self):
        """The info group gives title and author."""
        meta = parse_document(RTF_SAMPLE, "report.rtf").metadata
        assert meta.title == "Quarterly Report"
        assert meta.author == "Ana"
