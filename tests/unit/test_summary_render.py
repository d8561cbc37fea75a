from __future__ import annotations

from report_intake.models.violation import RuleKind, ValidationSummary, Violation
from report_intake.services.summary import render_summary_line

"""Unit tests for the validation summary line."""


def test_clean_run():
    line = render_summary_line(3, ValidationSummary())
    assert line == "SUMMARY sheets=3 errors=0 empty_fields=no fractions=no purpose_ids=no value_premises=no"


def test_flags_follow_violation_kinds():
    violations = [
        Violation(0, 1, 0, "m", RuleKind.EMPTY_FIELD),
        Violation(0, 1, 1, "m", RuleKind.EMPTY_FIELD),
        Violation(0, 2, 3, "m", RuleKind.INVALID_VALUE_PREMISE_ID),
    ]
    line = render_summary_line(1, ValidationSummary.from_violations(violations))
    assert line == "SUMMARY sheets=1 errors=3 empty_fields=yes fractions=no purpose_ids=no value_premises=yes"


def test_all_flags():
    summary = ValidationSummary.from_violations(Violation(0, 1, i, "m", kind) for i, kind in enumerate(RuleKind))
    line = render_summary_line(0, summary)
    assert line.endswith("errors=4 empty_fields=yes fractions=yes purpose_ids=yes value_premises=yes")
