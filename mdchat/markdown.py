"""Markdown helpers: AI marker blocks, header sections and insert placeholders."""

import re
from dataclasses import dataclass
from typing import List, Optional

_HEADER = re.compile(r"^(#{1,6})\s+(.+)$")
_INSERT_START = re.compile(r"<!--\s*AI\s*-?\s*insert\s+(here|start)\s*-->", re.IGNORECASE)
_INSERT_END = re.compile(r"<!--\s*AI\s*insert\s+end\s*-->", re.IGNORECASE)
_BLOCK_END = re.compile(r"<!--\s*/AI\s*-->", re.IGNORECASE)

# Lines of surrounding text given to the model for each insert block
INSERT_CONTEXT_LINES = 10


def wrap_block(text: str, kind: str = "summary") -> str:
    """Frame generated text in an AI marker block."""
    return f"<!-- AI:{kind} -->\n{text}\n<!-- /AI -->\n"


@dataclass
class Section:
    """A header and its body, as a half-open line range."""

    title: str
    level: int
    start: int
    end: int
    content: str


@dataclass
class Header:
    title: str
    level: int
    line: int  # 1-based


@dataclass
class InsertBlock:
    """An insert placeholder with the text around it."""

    start_line: int
    end_line: int
    context_before: str
    context_after: str
    original_content: str


def _match_header(line: str):
    match = _HEADER.match(line.strip())
    if match:
        return len(match.group(1)), match.group(2)
    return None


def list_headers(content: str) -> List[Header]:
    """All Markdown headers in a document, in order."""
    headers = []
    for i, line in enumerate(content.split("\n")):
        header = _match_header(line)
        if header:
            headers.append(Header(title=header[1], level=header[0], line=i + 1))
    return headers


def extract_section(content: str, section_name: str) -> Optional[Section]:
    """
    Find a section by header name.

    The first header whose title contains the name, or is contained in it
    (case-insensitive), starts the section. It ends at the next header of the
    same or a higher level, or at the end of the document.
    """
    lines = content.split("\n")
    wanted = section_name.lower()
    section_start = -1
    header_level = 0
    title = ""

    for i, line in enumerate(lines):
        header = _match_header(line)
        if header:
            candidate = header[1].lower()
            if wanted in candidate or candidate in wanted:
                section_start = i
                header_level, title = header
                break

    if section_start == -1:
        return None

    section_end = len(lines)
    for i in range(section_start + 1, len(lines)):
        header = _match_header(lines[i])
        if header and header[0] <= header_level:
            section_end = i
            break

    return Section(
        title=title,
        level=header_level,
        start=section_start,
        end=section_end,
        content="\n".join(lines[section_start:section_end]),
    )


def replace_lines(content: str, start: int, end: int, replacement: str) -> str:
    """Replace lines [start, end) of content with replacement text."""
    lines = content.split("\n")
    return "\n".join(lines[:start] + [replacement] + lines[end:])


def find_insert_blocks(content: str) -> List[InsertBlock]:
    """
    Find AI insert placeholders in content.

    A block opens with ``<!-- AI insert here -->`` (or ``insert start``) and
    closes with ``<!-- AI insert end -->`` or ``<!-- /AI -->``. Unclosed
    openers are ignored.
    """
    lines = content.split("\n")
    blocks = []
    i = 0

    while i < len(lines):
        if _INSERT_START.search(lines[i].strip()):
            start_line = i
            end_line = -1
            for j in range(i + 1, len(lines)):
                stripped = lines[j].strip()
                if _INSERT_END.search(stripped) or _BLOCK_END.search(stripped):
                    end_line = j
                    break

            if end_line != -1:
                before = lines[max(0, start_line - INSERT_CONTEXT_LINES) : start_line]
                after = lines[end_line + 1 : end_line + 1 + INSERT_CONTEXT_LINES]
                blocks.append(
                    InsertBlock(
                        start_line=start_line,
                        end_line=end_line,
                        context_before="\n".join(before).strip(),
                        context_after="\n".join(after).strip(),
                        original_content="\n".join(lines[start_line : end_line + 1]),
                    )
                )
                i = end_line
        i += 1

    return blocks
