from __future__ import annotations

import io
import re

import pandas as pd

from ..models.workbook import Workbook

"""Tabular writer: Workbook -> xlsx bytes.

Used for the corrected-copy download. Each Sheet is written header-less so
that row 0 lands on the first spreadsheet row exactly as it was read.
"""

__all__ = [
    "WorkbookWriteError",
    "write_workbook",
]

MAX_SHEET_TITLE = 31
_INVALID_TITLE_CHARS = re.compile(r"[\[\]:*?/\\]")


class WorkbookWriteError(Exception):
    """Raised when a Workbook cannot be serialized."""


def _sheet_titles(workbook: Workbook) -> list[str]:
    """Source sheet names where available, else Sheet<n>; unique and Excel-safe."""
    titles: list[str] = []
    used: set[str] = set()
    for idx, sheet in enumerate(workbook.sheets):
        base = _INVALID_TITLE_CHARS.sub("_", sheet.name or "").strip()[:MAX_SHEET_TITLE] or f"Sheet{idx + 1}"
        title = base
        n = 2
        while title.lower() in used:
            suffix = f" ({n})"
            title = base[: MAX_SHEET_TITLE - len(suffix)] + suffix
            n += 1
        used.add(title.lower())
        titles.append(title)
    return titles


def write_workbook(workbook: Workbook) -> bytes:
    if not workbook.sheets:
        raise WorkbookWriteError("workbook has no sheets")
    buffer = io.BytesIO()
    try:
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            for title, sheet in zip(_sheet_titles(workbook), workbook.sheets, strict=True):
                df = pd.DataFrame([list(r) for r in sheet.rows], dtype=object)
                df.to_excel(writer, sheet_name=title, header=False, index=False)
    except Exception as e:
        raise WorkbookWriteError(f"cannot write workbook: {e}") from e
    return buffer.getvalue()
