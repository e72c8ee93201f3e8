"""
RTF parsing.

A single-pass tokenizer walks the RTF groups and control words:

- ``\\par`` ends a paragraph; ``\\pard`` resets paragraph properties
- ``\\outlinelevelN`` marks a heading of level N+1
- ``\\lsN`` / ``\\ilvlN`` mark list paragraphs; the rendered marker in the
  ``\\listtext`` group decides whether the list is ordered
- ``\\intbl`` / ``\\cell`` / ``\\row`` build tables (first row as headers)
- ``\\footnote`` groups become footnotes numbered in order of appearance
- ``\\'hh`` and ``\\uN`` escapes are decoded
- font/colour/style tables, ``\\*`` destinations and pictures are dropped
- ``\\title`` / ``\\author`` in the ``\\info`` group give the metadata
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from doctrans_llms.errors import ParseFailureError
from doctrans_llms.ingest.base import DocumentParser, StructureBuilder, build_content
from doctrans_llms.models import DocumentContent

_TOKEN_RE = re.compile(
    r"\\'(?P<hex>[0-9a-fA-F]{2})"
    r"|\\(?P<word>[a-zA-Z]+)(?P<arg>-?\d+)? ?"
    r"|\\(?P<symbol>[^a-zA-Z])"
    r"|(?P<brace>[{}])"
    r"|(?P<newline>\r?\n)"
    r"|(?P<text>[^\\{}\r\n]+)"
)

_SKIP_DESTINATIONS = {
    "fonttbl", "colortbl", "stylesheet", "listtable", "listoverridetable",
    "pict", "object", "header", "headerl", "headerr", "headerf",
    "footer", "footerl", "footerr", "footerf", "generator", "rsidtbl",
    "xmlnstbl", "themedata", "colorschememapping", "latentstyles",
    "datastore", "fldinst", "revtbl", "pgdsctbl", "filetbl",
}

_CHAR_WORDS = {
    "tab": " ",
    "line": " ",
    "emdash": "—",
    "endash": "–",
    "bullet": "•",
    "lquote": "‘",
    "rquote": "’",
    "ldblquote": "“",
    "rdblquote": "”",
    "emspace": " ",
    "enspace": " ",
}

_CHAR_SYMBOLS = {"~": " ", "-": "", "_": "-", "\\": "\\", "{": "{", "}": "}"}

_ORDERED_MARKER_RE = re.compile(r"^\s*(\d+|[a-zA-Z]|[ivxlcdm]+)[.)]")


@dataclass
class _Group:
    dest: Optional[str] = None  # None, "skip", "info", "footnote", "title", "author", "listtext"
    uc: int = 1


@dataclass
class _ParagraphProps:
    outline_level: Optional[int] = None
    list_level: Optional[int] = None
    in_table: bool = False


@dataclass
class _RTFState:
    builder: StructureBuilder = field(default_factory=StructureBuilder)
    props: _ParagraphProps = field(default_factory=_ParagraphProps)
    text: list[str] = field(default_factory=list)
    listtext: list[str] = field(default_factory=list)
    cell_text: list[str] = field(default_factory=list)
    row: list[str] = field(default_factory=list)
    table_rows: list[list[str]] = field(default_factory=list)
    list_items: list[tuple[str, int]] = field(default_factory=list)
    list_ordered: bool = False
    footnote_text: list[str] = field(default_factory=list)
    footnotes: list[str] = field(default_factory=list)
    meta: dict = field(default_factory=dict)


class RTFParser(DocumentParser):
    """Parser for Rich Text Format documents."""

    format_name = "RTF"

    def __init__(self, encoding: str = "cp1252"):
        self.encoding = encoding

    def _parse(self, data: bytes) -> DocumentContent:
        source = data.decode("latin-1")
        if not source.lstrip().startswith("{\\rtf"):
            raise ParseFailureError("Failed to parse RTF: missing {\\rtf header")

        state = _RTFState()
        stack: list[_Group] = []
        group = _Group()
        skip_chars = 0

        for match in _TOKEN_RE.finditer(source):
            kind = match.lastgroup

            if kind == "brace":
                if match.group("brace") == "{":
                    stack.append(group)
                    group = _Group(dest=group.dest, uc=group.uc)
                else:
                    if not stack:
                        continue
                    closing = group
                    group = stack.pop()
                    if closing.dest == "footnote" and group.dest != "footnote":
                        state.footnotes.append(" ".join("".join(state.footnote_text).split()))
                        state.footnote_text = []
                    elif closing.dest in ("title", "author") and group.dest != closing.dest:
                        state.meta[closing.dest] = "".join(state.meta.get(closing.dest, []))
                continue

            if kind == "newline":
                continue

            if kind == "hex":
                if skip_chars:
                    skip_chars -= 1
                    continue
                char = bytes([int(match.group("hex"), 16)]).decode(self.encoding, errors="replace")
                self._emit(state, group, char)
                continue

            if kind == "text":
                text = match.group("text")
                if skip_chars:
                    dropped = min(skip_chars, len(text))
                    text = text[dropped:]
                    skip_chars -= dropped
                self._emit(state, group, text)
                continue

            if kind == "symbol":
                symbol = match.group("symbol")
                if symbol == "*":
                    group.dest = "skip"
                elif symbol in ("\n", "\r"):
                    self._end_paragraph(state, group)
                elif symbol in _CHAR_SYMBOLS:
                    self._emit(state, group, _CHAR_SYMBOLS[symbol])
                continue

            word = match.group("word")
            arg = match.group("arg")
            value = int(arg) if arg is not None else None

            if word in _SKIP_DESTINATIONS:
                group.dest = "skip"
            elif word == "info":
                group.dest = "info"
            elif word in ("title", "author") and group.dest == "info":
                group.dest = word
                state.meta[word] = []
            elif word == "footnote":
                if group.dest != "skip":
                    group.dest = "footnote"
            elif word in ("listtext", "pntext"):
                group.dest = "listtext"
                state.listtext = []
            elif word == "u" and value is not None:
                self._emit(state, group, chr(value + 65536 if value < 0 else value))
                skip_chars = group.uc
            elif word == "uc" and value is not None:
                group.uc = value
            elif word == "par":
                self._end_paragraph(state, group)
            elif group.dest is not None:
                # Paragraph and table properties only apply to body text
                if word in _CHAR_WORDS:
                    self._emit(state, group, _CHAR_WORDS[word])
            elif word == "pard":
                state.props = _ParagraphProps()
            elif word == "outlinelevel" and value is not None:
                state.props.outline_level = value
            elif word == "ls":
                if state.props.list_level is None:
                    state.props.list_level = 0
            elif word == "ilvl" and value is not None:
                state.props.list_level = value
            elif word == "intbl":
                # A table closes any list before it
                self._flush_list(state)
                state.props.in_table = True
            elif word == "cell":
                state.row.append(" ".join("".join(state.cell_text + state.text).split()))
                state.cell_text = []
                state.text = []
            elif word == "row":
                if state.row:
                    state.table_rows.append(state.row)
                state.row = []
            elif word in _CHAR_WORDS:
                self._emit(state, group, _CHAR_WORDS[word])

        if stack:
            raise ParseFailureError("Failed to parse RTF: unbalanced braces")

        self._end_paragraph(state, group)
        self._flush_list(state)
        self._flush_table(state)

        for number, text in enumerate(state.footnotes, start=1):
            state.builder.add_footnote(text, str(number))

        title = state.meta.get("title")
        author = state.meta.get("author")
        return build_content(
            state.builder,
            title=title if isinstance(title, str) else None,
            author=author if isinstance(author, str) else None,
        )

    def _emit(self, state: _RTFState, group: _Group, text: str) -> None:
        dest = group.dest
        if dest is None:
            state.text.append(text)
        elif dest == "footnote":
            state.footnote_text.append(text)
        elif dest == "listtext":
            state.listtext.append(text)
        elif dest in ("title", "author"):
            state.meta[dest].append(text)

    def _end_paragraph(self, state: _RTFState, group: _Group) -> None:
        if group.dest == "footnote":
            state.footnote_text.append(" ")
            return
        if group.dest is not None:
            return

        text = " ".join("".join(state.text).split())
        state.text = []
        props = state.props

        if props.in_table:
            # Paragraph breaks inside a cell stay in that cell
            state.cell_text.append(text + " ")
            return

        self._flush_table(state)

        if props.list_level is not None:
            ordered = bool(_ORDERED_MARKER_RE.match("".join(state.listtext)))
            state.listtext = []
            if state.list_items and ordered != state.list_ordered:
                self._flush_list(state)
            state.list_ordered = ordered
            state.list_items.append((text, props.list_level))
            return

        self._flush_list(state)
        if props.outline_level is not None:
            state.builder.add_heading(text, props.outline_level + 1)
        else:
            state.builder.add_paragraph(text)

    def _flush_list(self, state: _RTFState) -> None:
        if state.list_items:
            state.builder.add_list(state.list_items, ordered=state.list_ordered)
        state.list_items = []

    def _flush_table(self, state: _RTFState) -> None:
        if state.row:
            state.table_rows.append(state.row)
            state.row = []
        if state.table_rows:
            state.builder.add_table(state.table_rows[0], state.table_rows[1:])
        state.table_rows = []


def parse_rtf(data: bytes) -> DocumentContent:
    """Convenience function to parse RTF bytes."""
    return RTFParser().parse(data)
