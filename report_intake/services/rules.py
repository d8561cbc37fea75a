from __future__ import annotations

import math
import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from ..models.violation import RuleKind
from ..models.workbook import Cell, is_empty_cell, normalize_header

"""Cell rule set for report sheets.

Every data cell is checked for emptiness. Three known columns additionally
carry a typed rule that only runs on non-empty cells:

- final_value: whole number
- purpose_id: one of ALLOWED_PURPOSE_IDS
- value_premise_id: one of ALLOWED_VALUE_PREMISE_IDS

Columns with any other header only get the empty check.
"""

__all__ = [
    "ALLOWED_PURPOSE_IDS",
    "ALLOWED_VALUE_PREMISE_IDS",
    "CellRule",
    "ColumnKey",
    "EMPTY_FIELD_RULE",
    "TYPED_RULES",
    "coerce_number",
    "rules_for_header",
]

ALLOWED_PURPOSE_IDS: tuple[int, ...] = (1, 2, 5, 6, 8, 9, 10, 12, 14)
ALLOWED_VALUE_PREMISE_IDS: tuple[int, ...] = (1, 2, 3, 4, 5)

# Plain decimal or scientific notation; no thousands separators, no locale.
_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def coerce_number(value: Cell) -> float:
    """Interpret a cell as a number, NaN when it does not coerce."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if _NUMBER_RE.fullmatch(text):
            return float(text)
    return math.nan


def _is_whole_number(value: Cell) -> bool:
    number = coerce_number(value)
    return math.isfinite(number) and number.is_integer()


def _member_of(allowed: tuple[int, ...]) -> Callable[[Cell], bool]:
    def check(value: Cell) -> bool:
        number = coerce_number(value)
        return math.isfinite(number) and number in allowed
    return check


def _allowed_list(allowed: tuple[int, ...]) -> str:
    return ", ".join(str(v) for v in allowed)


@dataclass(frozen=True)
class CellRule:
    """A predicate over one raw cell value; ``check`` returns True when the cell passes."""
    kind: RuleKind
    message: str
    check: Callable[[Cell], bool]


class ColumnKey(Enum):
    """Closed set of column headers that carry a typed rule."""
    FINAL_VALUE = "final_value"
    PURPOSE_ID = "purpose_id"
    VALUE_PREMISE_ID = "value_premise_id"

    @classmethod
    def lookup(cls, header: Cell) -> ColumnKey | None:
        """Exact match on the normalized header; unknown headers return None."""
        try:
            return cls(normalize_header(header))
        except ValueError:
            return None


EMPTY_FIELD_RULE = CellRule(
    kind=RuleKind.EMPTY_FIELD,
    message="Empty field - please fill this field",
    check=lambda value: not is_empty_cell(value),
)

TYPED_RULES: dict[ColumnKey, CellRule] = {
    ColumnKey.FINAL_VALUE: CellRule(
        kind=RuleKind.FRACTION_IN_FINAL_VALUE,
        message="Final value must be an integer",
        check=_is_whole_number,
    ),
    ColumnKey.PURPOSE_ID: CellRule(
        kind=RuleKind.INVALID_PURPOSE_ID,
        message=f"Invalid purpose ID - Allowed: {_allowed_list(ALLOWED_PURPOSE_IDS)}",
        check=_member_of(ALLOWED_PURPOSE_IDS),
    ),
    ColumnKey.VALUE_PREMISE_ID: CellRule(
        kind=RuleKind.INVALID_VALUE_PREMISE_ID,
        message=f"Invalid value premise - Allowed: {_allowed_list(ALLOWED_VALUE_PREMISE_IDS)}",
        check=_member_of(ALLOWED_VALUE_PREMISE_IDS),
    ),
}


def rules_for_header(header: Cell) -> tuple[CellRule, ...]:
    """Rules for a column, in application order (empty check first)."""
    key = ColumnKey.lookup(header)
    if key is None:
        return (EMPTY_FIELD_RULE,)
    return (EMPTY_FIELD_RULE, TYPED_RULES[key])
