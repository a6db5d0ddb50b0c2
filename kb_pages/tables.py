r"""Parse and render comma-separated table blocks.

Table blocks hold CSV-like text: one row per line, cells split on commas
outside double quotes, ``""`` inside quotes standing for a literal quote. The
first row is the header. Cells may contain inline code spans delimited by
backticks, which render as ``<code>`` elements.

Example
-------
>>> from kb_pages.tables import parse
>>> parse('a,b\n"x,y",z')
[['a', 'b'], ['x,y', 'z']]
"""

from __future__ import annotations

import dataclasses as dc
import re
from html import escape

INLINE_CODE_PATTERN = re.compile(r"(`[^`]+`)")
EMPTY_TABLE_MESSAGE = "No table content"


def parse_line(line: str) -> list[str]:
    """Split one line into trimmed cells, honouring quoted commas."""
    cells: list[str] = []
    current: list[str] = []
    in_quotes = False
    index = 0
    while index < len(line):
        char = line[index]
        if in_quotes and char == '"' and line[index + 1 : index + 2] == '"':
            current.append('"')
            index += 2
            continue
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        index += 1
    cells.append("".join(current).strip())
    return cells


def parse(text: str) -> list[list[str]]:
    """Return the rows of ``text``; blank input yields no rows at all."""
    trimmed = text.strip()
    if not trimmed:
        return []
    return [parse_line(line.rstrip("\r")) for line in trimmed.split("\n")]


@dc.dataclass(slots=True)
class TableGrid:
    """Header plus data rows, with short rows padded to the header width."""

    headers: list[str]
    rows: list[list[str]]

    @classmethod
    def from_text(cls, text: str) -> TableGrid | None:
        """Build a grid from ``text`` or return ``None`` when it has no rows."""
        parsed = parse(text)
        if not parsed:
            return None
        headers, *data = parsed
        width = len(headers)
        rows = [row + [""] * (width - len(row)) for row in data]
        return cls(headers=headers, rows=rows)


def render_cell(content: str) -> str:
    """Render cell text as HTML, turning backtick spans into ``<code>``."""
    parts: list[str] = []
    for part in INLINE_CODE_PATTERN.split(content):
        if not part:
            continue
        if INLINE_CODE_PATTERN.fullmatch(part):
            parts.append(f"<code>{escape(part[1:-1])}</code>")
        else:
            parts.append(f"<span>{escape(part)}</span>")
    return "".join(parts)


def render_table(text: str, title: str | None = None) -> str:
    """Render a table block into an HTML fragment."""
    grid = TableGrid.from_text(text)
    if grid is None:
        return f'<p class="kb-table-empty">{EMPTY_TABLE_MESSAGE}</p>'
    label = escape(title or "table")
    header_cells = "".join(f"<th>{render_cell(cell)}</th>" for cell in grid.headers)
    body_rows = "".join(
        "<tr>" + "".join(f"<td>{render_cell(cell)}</td>" for cell in row) + "</tr>"
        for row in grid.rows
    )
    return (
        '<div class="kb-table">'
        f'<div class="kb-table-caption">{label} • {len(grid.rows)} rows</div>'
        f"<table><thead><tr>{header_cells}</tr></thead>"
        f"<tbody>{body_rows}</tbody></table>"
        "</div>"
    )


__all__ = [
    "EMPTY_TABLE_MESSAGE",
    "TableGrid",
    "parse",
    "parse_line",
    "render_cell",
    "render_table",
]
