from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

"""Workbook, Sheet and Artifact domain models for the report intake pipeline.

A Workbook is the parsed form of one tabular upload: an ordered tuple of
Sheets, each an ordered tuple of rows. Row 0 of every sheet is the header row,
rows >= 1 are data rows aligned by position with the header.

Everything here is immutable so that the validation engine and the export
builder can share the Workbook held by the pipeline state without copying it.
"""

__all__ = [
    "Cell",
    "Row",
    "Sheet",
    "Workbook",
    "Artifact",
    "is_empty_cell",
    "normalize_header",
]

Cell = str | int | float | bool | None
Row = tuple[Cell, ...]


def is_empty_cell(value: Cell) -> bool:
    """Absent cells and empty strings count as empty; whitespace does not."""
    return value is None or value == ""


def normalize_header(value: Cell) -> str:
    """Header name as used for rule lookup (trimmed, lower-cased)."""
    if value is None:
        return ""
    return str(value).strip().lower()


@dataclass(frozen=True)
class Sheet:
    """One table of a Workbook.

    ``rows[0]`` is the header row. ``name`` is the physical sheet name when
    the source format has one; it is only used for export and logging.
    """
    rows: tuple[Row, ...]
    name: str | None = None

    @classmethod
    def from_rows(cls, rows: list[list[Cell]] | tuple[Row, ...], name: str | None = None) -> Sheet:
        return cls(rows=tuple(tuple(r) for r in rows), name=name)

    @property
    def header(self) -> Row:
        return self.rows[0] if self.rows else ()

    @property
    def data_rows(self) -> tuple[Row, ...]:
        return self.rows[1:]

    @property
    def is_inert(self) -> bool:
        """Sheets without at least one data row are skipped by validation."""
        return len(self.rows) < 2

    def header_at(self, col: int) -> str:
        """Normalized header name for a column (empty when the header is shorter)."""
        header = self.header
        if col >= len(header):
            return ""
        return normalize_header(header[col])

    def shape(self) -> tuple[int, ...]:
        """Row widths in order; used to compare structure between Workbooks."""
        return tuple(len(r) for r in self.rows)


@dataclass(frozen=True)
class Workbook:
    """Ordered collection of Sheets parsed from one tabular file."""
    sheets: tuple[Sheet, ...]

    @classmethod
    def from_rows(cls, sheets: list[list[list[Cell]]]) -> Workbook:
        """Build a Workbook from plain nested lists (sheet -> row -> cell)."""
        return cls(sheets=tuple(Sheet.from_rows(s) for s in sheets))

    def __len__(self) -> int:
        return len(self.sheets)

    def __iter__(self):
        return iter(self.sheets)

    def __getitem__(self, index: int) -> Sheet:
        return self.sheets[index]

    @property
    def data_row_count(self) -> int:
        return sum(len(s.data_rows) for s in self.sheets)


@dataclass(frozen=True)
class Artifact:
    """An uploaded file tracked by the pipeline (tabular file or document).

    The content is opaque to the pipeline; only the tabular artifact is ever
    parsed, and only by the reader.
    """
    name: str
    content: bytes

    @classmethod
    def from_path(cls, path: Path) -> Artifact:
        return cls(name=path.name, content=path.read_bytes())

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def suffix(self) -> str:
        return Path(self.name).suffix.lower()

    def __repr__(self) -> str:  # keep reprs short in logs and test output
        return f"Artifact(name={self.name!r}, size={self.size})"
