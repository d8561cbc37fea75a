from __future__ import annotations

from collections.abc import Iterable

from ..models.violation import Violation
from ..models.workbook import Cell, Sheet, Workbook

"""Annotated export builder.

Produces a corrected-copy Workbook in which every violating cell holds
"<original> ⚠ <message>" so that the user can fix the file in place and
upload it again. The input Workbook is never modified; every sheet of the
result is a fresh copy with exactly the input's shape.
"""

__all__ = [
    "WARNING_MARKER",
    "annotate_cell",
    "build_annotated",
]

WARNING_MARKER = "⚠"


def annotate_cell(value: Cell, message: str) -> str:
    """Append a violation message to a cell value (empty string when absent)."""
    original = "" if value is None else str(value)
    return f"{original} {WARNING_MARKER} {message}"


def build_annotated(workbook: Workbook, violations: Iterable[Violation]) -> Workbook:
    """Return a copy of ``workbook`` with violation messages inlined.

    Violations on the same cell are applied in order, each one annotating the
    already annotated value. Violations addressing a cell outside the sheet
    are ignored so that the output shape always equals the input shape.
    """
    grids: list[list[list[Cell]]] = [[list(row) for row in sheet.rows] for sheet in workbook.sheets]

    for v in violations:
        if not 0 <= v.sheet_index < len(grids):
            continue
        grid = grids[v.sheet_index]
        if not 0 <= v.row < len(grid) or not 0 <= v.col < len(grid[v.row]):
            continue
        grid[v.row][v.col] = annotate_cell(grid[v.row][v.col], v.message)

    return Workbook(
        sheets=tuple(
            Sheet.from_rows(grid, name=sheet.name) for grid, sheet in zip(grids, workbook.sheets, strict=True)
        )
    )
