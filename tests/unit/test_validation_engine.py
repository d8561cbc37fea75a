from __future__ import annotations

from unittest.mock import patch

from report_intake.models.violation import RuleKind, Violation
from report_intake.models.workbook import Sheet, Workbook
from report_intake.services.validation import validate, validate_sheet

"""Validation engine: cell addressing, rule selection, ordering and purity."""

HEADER = ["report_name", "final_value", "purpose_id", "value_premise_id"]


def _wb(*sheets: list[list[object]]) -> Workbook:
    return Workbook.from_rows(list(sheets))


def test_empty_workbook_has_no_violations():
    result = validate(Workbook(sheets=()))
    assert result.violations == ()
    assert result.is_valid
    assert result.summary.total_errors == 0


def test_clean_workbook(clean_workbook):
    result = validate(clean_workbook)
    assert result.is_valid
    assert result.summary.is_valid


def test_inert_sheets_are_skipped():
    wb = Workbook(sheets=(Sheet(rows=()), Sheet.from_rows([["final_value"]])))
    assert validate(wb).violations == ()


def test_header_row_is_never_validated():
    wb = _wb([[None, "", "purpose_id"], ["a", "b", 8]])
    assert validate(wb).violations == ()


def test_purpose_id_violation_is_located(purpose_violation_workbook):
    result = validate(purpose_violation_workbook)
    assert result.violations == (
        Violation(
            sheet_index=0,
            row=2,
            col=2,
            message="Invalid purpose ID - Allowed: 1, 2, 5, 6, 8, 9, 10, 12, 14",
            rule=RuleKind.INVALID_PURPOSE_ID,
        ),
    )
    summary = result.summary
    assert summary.total_errors == 1
    assert summary.has_invalid_purpose_id
    assert not summary.has_empty_fields
    assert not summary.has_fraction_in_final_value
    assert not summary.has_invalid_value_premise_id


def test_final_value_fraction():
    wb = _wb([["final_value"], [10], [10.5], ["7"]])
    result = validate(wb)
    assert [(v.row, v.col, v.rule) for v in result.violations] == [(2, 0, RuleKind.FRACTION_IN_FINAL_VALUE)]
    assert result.violations[0].message == "Final value must be an integer"


def test_value_premise_violation():
    wb = _wb([["value_premise_id"], [3], [6]])
    (v,) = validate(wb).violations
    assert (v.row, v.col) == (2, 0)
    assert v.message == "Invalid value premise - Allowed: 1, 2, 3, 4, 5"


def test_empty_cell_reported_once_even_in_typed_column():
    wb = _wb([["final_value", "notes"], [None, ""]])
    violations = validate(wb).violations
    assert [(v.row, v.col, v.rule) for v in violations] == [
        (1, 0, RuleKind.EMPTY_FIELD),
        (1, 1, RuleKind.EMPTY_FIELD),
    ]
    assert all(v.message == "Empty field - please fill this field" for v in violations)


def test_headers_match_case_insensitively():
    wb = _wb([[" Purpose_ID ", "FINAL_VALUE"], [7, 1.5]])
    rules = [v.rule for v in validate(wb).violations]
    assert rules == [RuleKind.INVALID_PURPOSE_ID, RuleKind.FRACTION_IN_FINAL_VALUE]


def test_numeric_strings_are_coerced():
    wb = _wb([["purpose_id", "final_value"], ["8", "12"], ["abc", "1.25"]])
    violations = validate(wb).violations
    assert [(v.row, v.col) for v in violations] == [(2, 0), (2, 1)]


def test_zero_is_checked_not_treated_as_empty():
    wb = _wb([["purpose_id", "final_value"], [0, 0]])
    violations = validate(wb).violations
    assert [v.rule for v in violations] == [RuleKind.INVALID_PURPOSE_ID]


def test_whitespace_only_fails_typed_rule_not_empty_rule():
    wb = _wb([["purpose_id", "notes"], ["  ", "  "]])
    violations = validate(wb).violations
    assert [(v.col, v.rule) for v in violations] == [(0, RuleKind.INVALID_PURPOSE_ID)]


def test_cells_beyond_header_get_only_empty_check():
    sheet = Sheet.from_rows([["purpose_id"], [8, 999, None]])
    violations = validate_sheet(sheet, 0)
    assert [(v.col, v.rule) for v in violations] == [(2, RuleKind.EMPTY_FIELD)]


def test_canonical_order_across_sheets_rows_columns():
    wb = _wb(
        [["purpose_id", "final_value"], [7, 1.5], [None, 3]],
        [["value_premise_id"], [9]],
    )
    violations = validate(wb).violations
    assert [(v.sheet_index, v.row, v.col) for v in violations] == [
        (0, 1, 0),
        (0, 1, 1),
        (0, 2, 0),
        (1, 1, 0),
    ]
    summary = validate(wb).summary
    assert summary.total_errors == 4
    assert summary.has_empty_fields
    assert summary.has_fraction_in_final_value
    assert summary.has_invalid_purpose_id
    assert summary.has_invalid_value_premise_id


def test_validation_is_deterministic_and_does_not_mutate(purpose_violation_workbook):
    before = purpose_violation_workbook.sheets
    first = validate(purpose_violation_workbook)
    second = validate(purpose_violation_workbook)
    assert first == second
    assert purpose_violation_workbook.sheets is before


def test_validate_reports_progress_per_sheet(purpose_violation_workbook):
    with patch("report_intake.services.validation.SheetProgress") as progress_cls:
        bar = progress_cls.return_value.__enter__.return_value
        validate(purpose_violation_workbook, progress=True)
    progress_cls.assert_called_once_with(1, enabled=True)
    bar.sheet_started.assert_called_once_with("Sheet1")
    bar.sheet_done.assert_called_once_with(1)
