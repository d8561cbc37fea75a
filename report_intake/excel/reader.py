from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable
from typing import Any

import pandas as pd

from ..models.workbook import Artifact, Cell, Sheet, Workbook

"""Tabular reader: uploaded bytes -> Workbook.

Every physical sheet becomes one Sheet, read without a header so that row 0
of the Sheet is the header row as the user wrote it. pandas' default NA
handling is switched off; only truly empty cells and the configured
``na_strings`` become absent cells, so "NA" typed into a cell stays text.
"""

__all__ = [
    "SUPPORTED_SUFFIXES",
    "WorkbookReadError",
    "read_artifact",
    "read_workbook",
]

logger = logging.getLogger(__name__)

# legacy .xls goes through xlrd; openpyxl only reads the OOXML formats
EXCEL_ENGINES = {".xlsx": "openpyxl", ".xlsm": "openpyxl", ".xls": "xlrd"}
EXCEL_SUFFIXES = set(EXCEL_ENGINES)
CSV_SUFFIXES = {".csv"}
SUPPORTED_SUFFIXES = EXCEL_SUFFIXES | CSV_SUFFIXES


class WorkbookReadError(Exception):
    """Raised when an upload is not a readable tabular file."""


def _to_cell(value: Any) -> Cell:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if pd.isna(value):
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        # object columns keep ints; headerless numeric columns arrive as float64
        return int(value) if value.is_integer() else float(value)
    if isinstance(value, int):
        return int(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if hasattr(value, "item"):  # numpy scalar -> python scalar
        return _to_cell(value.item())
    return str(value)


def _trim_trailing(cells: list[Cell]) -> list[Cell]:
    end = len(cells)
    while end > 0 and cells[end - 1] is None:
        end -= 1
    return cells[:end]


def _frame_to_sheet(df: pd.DataFrame, name: str | None, skip_blank_rows: bool) -> Sheet:
    """Normalize a raw header-less DataFrame.

    Steps:
    1. Convert every value to a Cell (None / str / int / float / bool)
    2. Drop fully blank rows (when configured)
    3. Trim the header's trailing empty cells; pad data rows to the header
       width and drop empty cells past it
    """
    raw_rows = [[_to_cell(v) for v in row] for row in df.itertuples(index=False, name=None)]
    if skip_blank_rows:
        raw_rows = [r for r in raw_rows if any(c is not None for c in r)]
    if not raw_rows:
        return Sheet(rows=(), name=name)

    header = _trim_trailing(raw_rows[0])
    width = len(header)
    rows: list[list[Cell]] = [header]
    for r in raw_rows[1:]:
        inside = r[:width] + [None] * (width - len(r[:width]))
        beyond = _trim_trailing(r[width:])
        rows.append(inside + beyond)
    return Sheet.from_rows(rows, name=name)


def _na_values(na_strings: Iterable[str]) -> list[str]:
    # "" is what the Excel engine yields for an empty cell
    return [""] + [s for s in na_strings if s]


def _read_excel(content: bytes, na_strings: Iterable[str], skip_blank_rows: bool, engine: str) -> Workbook:
    na_values = _na_values(na_strings)
    sheets: list[Sheet] = []
    with pd.ExcelFile(io.BytesIO(content), engine=engine) as xls:
        for name in xls.sheet_names:
            df = xls.parse(name, header=None, keep_default_na=False, na_values=na_values)
            sheets.append(_frame_to_sheet(df, str(name), skip_blank_rows))
    return Workbook(sheets=tuple(sheets))


def _read_csv(content: bytes, na_strings: Iterable[str], skip_blank_rows: bool, name: str) -> Workbook:
    text = content.decode("utf-8-sig")
    # pandas sizes the frame from the first line; rows wider than the header
    # must survive like cells past the header of an Excel sheet
    width = max((len(r) for r in csv.reader(io.StringIO(text))), default=0)
    if width == 0:
        return Workbook(sheets=(Sheet(rows=(), name=name),))
    df = pd.read_csv(
        io.StringIO(text),
        header=None,
        names=range(width),
        keep_default_na=False,
        na_values=_na_values(na_strings),
        skip_blank_lines=skip_blank_rows,
    )
    return Workbook(sheets=(_frame_to_sheet(df, name, skip_blank_rows),))


def read_workbook(
    name: str,
    content: bytes,
    *,
    na_strings: Iterable[str] = (),
    skip_blank_rows: bool = True,
) -> Workbook:
    """Parse an uploaded tabular file.

    Parameters
    ----------
    name: file name; its suffix selects the format (.xlsx/.xlsm/.xls or .csv)
    content: raw file bytes
    na_strings: extra strings read as empty cells
    skip_blank_rows: drop rows whose cells are all empty

    Raises
    ------
    WorkbookReadError: unsupported suffix or malformed content
    """
    suffix = ("." + name.rsplit(".", 1)[-1].lower()) if "." in name else ""
    if suffix not in SUPPORTED_SUFFIXES:
        raise WorkbookReadError(
            f"unsupported file type '{suffix or name}' (expected one of {sorted(SUPPORTED_SUFFIXES)})"
        )
    if not content:
        raise WorkbookReadError(f"file is empty: {name}")
    try:
        if suffix in CSV_SUFFIXES:
            stem = name.rsplit(".", 1)[0]
            workbook = _read_csv(content, na_strings, skip_blank_rows, stem)
        else:
            workbook = _read_excel(content, na_strings, skip_blank_rows, EXCEL_ENGINES[suffix])
    except Exception as e:
        raise WorkbookReadError(f"cannot read {name}: {e}") from e
    logger.debug(
        "read name=%s sheets=%d data_rows=%d", name, len(workbook.sheets), workbook.data_row_count
    )
    return workbook


def read_artifact(artifact: Artifact) -> Workbook:
    """Parse a tabular Artifact with default reader settings."""
    return read_workbook(artifact.name, artifact.content)
