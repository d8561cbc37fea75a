from __future__ import annotations

from ..models.violation import ValidationSummary

"""Summary line rendering for validation results.

Format:
SUMMARY sheets={n} errors={n} empty_fields={yes|no} fractions={yes|no}
purpose_ids={yes|no} value_premises={yes|no}
"""


def _flag(value: bool) -> str:
    return "yes" if value else "no"


def render_summary_line(sheet_count: int, summary: ValidationSummary) -> str:
    """Render a SUMMARY line for one validation run.

    Examples:
        >>> render_summary_line(2, ValidationSummary(has_invalid_purpose_id=True, total_errors=1))
        'SUMMARY sheets=2 errors=1 empty_fields=no fractions=no purpose_ids=yes value_premises=no'
    """
    return (
        f"SUMMARY sheets={sheet_count} "
        f"errors={summary.total_errors} "
        f"empty_fields={_flag(summary.has_empty_fields)} "
        f"fractions={_flag(summary.has_fraction_in_final_value)} "
        f"purpose_ids={_flag(summary.has_invalid_purpose_id)} "
        f"value_premises={_flag(summary.has_invalid_value_premise_id)}"
    )
