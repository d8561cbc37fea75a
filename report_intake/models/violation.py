from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from enum import Enum

from openpyxl.utils import get_column_letter

"""Violation and ValidationSummary models.

A Violation addresses exactly one cell (sheet index, row, column as positions
into the parsed Sheet) and carries the human-readable message shown to the
user. The summary is always derived from a violation list; it is never stored
next to one.
"""

__all__ = [
    "RuleKind",
    "Violation",
    "ValidationSummary",
    "ValidationResult",
    "ViolationRecord",
]


class RuleKind(Enum):
    """Rule categories, in rule-application order."""
    EMPTY_FIELD = "empty_field"
    FRACTION_IN_FINAL_VALUE = "fraction_in_final_value"
    INVALID_PURPOSE_ID = "invalid_purpose_id"
    INVALID_VALUE_PREMISE_ID = "invalid_value_premise_id"


@dataclass(frozen=True)
class Violation:
    """One located rule failure."""
    sheet_index: int
    row: int  # position in Sheet.rows (0 = header)
    col: int
    message: str
    rule: RuleKind = RuleKind.EMPTY_FIELD

    @property
    def cell_ref(self) -> str:
        """Spreadsheet-style address of the cell, e.g. ``C5``."""
        return f"{get_column_letter(self.col + 1)}{self.row + 1}"

    def __str__(self) -> str:
        return f"sheet={self.sheet_index + 1} cell={self.cell_ref} {self.message}"


@dataclass(frozen=True)
class ValidationSummary:
    has_empty_fields: bool = False
    has_fraction_in_final_value: bool = False
    has_invalid_purpose_id: bool = False
    has_invalid_value_premise_id: bool = False
    total_errors: int = 0

    @classmethod
    def from_violations(cls, violations: Iterable[Violation]) -> ValidationSummary:
        items = list(violations)
        kinds = {v.rule for v in items}
        return cls(
            has_empty_fields=RuleKind.EMPTY_FIELD in kinds,
            has_fraction_in_final_value=RuleKind.FRACTION_IN_FINAL_VALUE in kinds,
            has_invalid_purpose_id=RuleKind.INVALID_PURPOSE_ID in kinds,
            has_invalid_value_premise_id=RuleKind.INVALID_VALUE_PREMISE_ID in kinds,
            total_errors=len(items),
        )

    @property
    def is_valid(self) -> bool:
        return self.total_errors == 0


@dataclass(frozen=True)
class ValidationResult:
    """Output of one validation run: ordered violations plus derived summary."""
    violations: tuple[Violation, ...]

    @property
    def summary(self) -> ValidationSummary:
        return ValidationSummary.from_violations(self.violations)

    @property
    def is_valid(self) -> bool:
        return not self.violations


@dataclass(frozen=True)
class ViolationRecord:
    """Structured violation entry for the JSON Lines violation log.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Tabular file name that was validated
        sheet: 1-based sheet number
        row: 1-based spreadsheet row number
        col: Spreadsheet column letters
        rule: RuleKind value
        message: Violation message shown to the user
    """
    timestamp: str
    file: str
    sheet: int
    row: int
    col: str
    rule: str
    message: str

    @staticmethod
    def create(file: str, violation: Violation) -> ViolationRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ViolationRecord(
            timestamp=ts,
            file=file,
            sheet=violation.sheet_index + 1,
            row=violation.row + 1,
            col=get_column_letter(violation.col + 1),
            rule=violation.rule.value,
            message=violation.message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
