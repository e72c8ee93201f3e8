"""
Ingestion module for parsing uploaded documents.

This module provides:
- Format dispatch by MIME type / file extension (``parse_document``)
- DOCX parsing with python-docx
- PDF parsing with PyMuPDF and heuristic layout classification
- RTF and ODT parsing
- Plain-text parsing (paragraphs split on blank lines)

Every parser produces the same ``DocumentContent`` shape; format-specific
parsers are imported lazily so that a missing optional library only affects
its own format.
"""

from doctrans_llms.ingest.base import (
    DocumentParser,
    PlainTextParser,
    StructureBuilder,
    build_content,
    detect_language,
    parse_document,
)

__all__ = [
    "DocumentParser",
    "PlainTextParser",
    "StructureBuilder",
    "build_content",
    "detect_language",
    "parse_document",
]
