"""
Domain: locating the offer grid inside a reply email.

Reply bodies are arbitrary HTML: mail clients wrap the quoted grid in layout
tables, add signatures with their own tables, and mangle markup. The offer
grid is the first table, in document order, whose header row has a cell
containing "line ref" and a cell containing "offer" (case-insensitive) and
that has at least one data row. A "qty" column is optional.

Only a table's own rows and cells are considered; text belonging to a nested
table never leaks into the enclosing table's cells.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from bs4 import BeautifulSoup, NavigableString, Tag

_CELL_TAGS = ["th", "td"]


@dataclass(frozen=True, slots=True)
class RawRow:
    """One data row of the offer grid, exactly as typed (trimmed)."""

    line_ref: str
    qty: str
    offer: str


def _own_rows(table: Tag) -> List[Tag]:
    return [row for row in table.find_all("tr") if row.find_parent("table") is table]


def _own_cells(row: Tag) -> List[Tag]:
    return [cell for cell in row.find_all(_CELL_TAGS) if cell.find_parent("tr") is row]


def _cell_text(cell: Tag) -> str:
    parts: List[str] = []
    for text in cell.find_all(string=True):
        # Comments, CDATA, script/style bodies are NavigableString subclasses.
        if type(text) is not NavigableString:
            continue
        if text.find_parent(_CELL_TAGS) is not cell:
            continue
        parts.append(str(text))
    return "".join(parts).replace("\xa0", " ").replace("&nbsp;", " ").strip()


def _column(normalized_header: List[str], needle: str) -> Optional[int]:
    for index, text in enumerate(normalized_header):
        if needle in text:
            return index
    return None


def _cell_at(cells: List[str], index: Optional[int]) -> str:
    if index is None or index >= len(cells):
        return ""
    return cells[index]


def extract_offer_rows(html: Optional[str]) -> List[RawRow]:
    """
    Return the data rows of the first qualifying offer table.

    An empty list means "no offers in this message"; it is not an error.
    """

    if not html:
        return []

    soup = BeautifulSoup(html, "html.parser")
    for table in soup.find_all("table"):
        rows = _own_rows(table)
        if not rows:
            continue

        header = [_cell_text(cell).lower() for cell in _own_cells(rows[0])]
        line_ref_idx = _column(header, "line ref")
        offer_idx = _column(header, "offer")
        if line_ref_idx is None or offer_idx is None:
            continue
        qty_idx = _column(header, "qty")

        parsed: List[RawRow] = []
        for row in rows[1:]:
            cells = [_cell_text(cell) for cell in _own_cells(row)]
            parsed.append(
                RawRow(
                    line_ref=_cell_at(cells, line_ref_idx),
                    qty=_cell_at(cells, qty_idx),
                    offer=_cell_at(cells, offer_idx),
                )
            )
        if parsed:
            return parsed

    return []


__all__ = ["RawRow", "extract_offer_rows"]
