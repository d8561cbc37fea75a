from __future__ import annotations

import logging

from ..models.violation import ValidationResult, Violation
from ..models.workbook import Sheet, Workbook, is_empty_cell
from .progress import SheetProgress
from .rules import EMPTY_FIELD_RULE, rules_for_header

"""Validation engine: applies the cell rule set to every data cell.

Output order is canonical and reproducible: sheet, then row, then column,
then rule-application order (empty check before the typed check). The
engine never mutates the Workbook and keeps no state between calls.
"""

__all__ = [
    "validate",
    "validate_sheet",
]

logger = logging.getLogger(__name__)


def validate_sheet(sheet: Sheet, sheet_index: int) -> list[Violation]:
    """Validate one sheet; inert sheets (fewer than 2 rows) yield nothing."""
    if sheet.is_inert:
        return []

    header = sheet.header
    column_rules = [rules_for_header(h) for h in header]

    violations: list[Violation] = []
    for row_index in range(1, len(sheet.rows)):
        row = sheet.rows[row_index]
        for col_index, cell in enumerate(row):
            # Cells beyond the header only get the empty check
            rules = column_rules[col_index] if col_index < len(column_rules) else (EMPTY_FIELD_RULE,)
            for rule in rules:
                if rule is not EMPTY_FIELD_RULE and is_empty_cell(cell):
                    # reported once, by the empty check
                    continue
                if not rule.check(cell):
                    violations.append(
                        Violation(
                            sheet_index=sheet_index,
                            row=row_index,
                            col=col_index,
                            message=rule.message,
                            rule=rule.kind,
                        )
                    )
    return violations


def validate(workbook: Workbook, *, progress: bool = False) -> ValidationResult:
    """Validate all sheets of a Workbook.

    Args:
        workbook: Parsed Workbook (read-only)
        progress: Show a tqdm bar over sheets when stdout is a TTY

    Returns:
        ValidationResult with the ordered violation tuple; the summary is
        derived from it on access.
    """
    violations: list[Violation] = []
    with SheetProgress(len(workbook.sheets), enabled=progress) as bar:
        for sheet_index, sheet in enumerate(workbook.sheets):
            bar.sheet_started(sheet.name or f"Sheet{sheet_index + 1}")
            found = validate_sheet(sheet, sheet_index)
            logger.debug(
                "sheet=%d name=%s rows=%d violations=%d",
                sheet_index,
                sheet.name,
                len(sheet.rows),
                len(found),
            )
            violations.extend(found)
            bar.sheet_done(len(found))
    return ValidationResult(violations=tuple(violations))
