from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .violation import ValidationSummary, Violation
from .workbook import Artifact, Workbook

"""Stage enum and PipelineState value object.

State transitions (linear, reversible):
    upload_tabular → validate_tabular → upload_document → commit → success

PipelineState is immutable; the transition functions in
report_intake.services.pipeline return a new state for every event.
"""

__all__ = [
    "Stage",
    "PipelineState",
]


class Stage(Enum):
    """Pipeline stages.

    - UPLOAD_TABULAR: waiting for a parseable tabular file
    - VALIDATE_TABULAR: tabular file selected, validation pending or failed
    - UPLOAD_DOCUMENT: tabular file valid, waiting for the supporting document
    - COMMIT: both artifacts present, ready to submit
    - SUCCESS: submission stored by the backend
    """
    UPLOAD_TABULAR = "upload_tabular"
    VALIDATE_TABULAR = "validate_tabular"
    UPLOAD_DOCUMENT = "upload_document"
    COMMIT = "commit"
    SUCCESS = "success"

    @property
    def rank(self) -> int:
        return _STAGE_RANK[self]

    def is_reached(self, other: Stage) -> bool:
        """True when ``other`` is this stage or an earlier one."""
        return self.rank >= other.rank

    def is_completed(self, other: Stage) -> bool:
        """True when ``other`` lies strictly before this stage."""
        return self.rank > other.rank


_STAGE_RANK: dict[Stage, int] = {
    Stage.UPLOAD_TABULAR: 0,
    Stage.VALIDATE_TABULAR: 1,
    Stage.UPLOAD_DOCUMENT: 2,
    Stage.COMMIT: 3,
    Stage.SUCCESS: 4,
}


@dataclass(frozen=True)
class PipelineState:
    """Complete state of one submission workflow.

    ``violations`` is None until a validation run for the current Workbook
    has completed; an empty tuple means the Workbook validated clean.
    ``operation_token`` identifies the validation or commit currently in
    flight so that a late result from an abandoned run can be recognised.
    """
    stage: Stage = Stage.UPLOAD_TABULAR
    tabular: Artifact | None = None
    document: Artifact | None = None
    workbook: Workbook | None = None
    violations: tuple[Violation, ...] | None = None
    error: str | None = None
    validating: bool = False
    committing: bool = False
    operation_token: str | None = None

    @property
    def summary(self) -> ValidationSummary:
        return ValidationSummary.from_violations(self.violations or ())

    @property
    def is_validated(self) -> bool:
        return self.violations is not None

    @property
    def is_tabular_valid(self) -> bool:
        """Derived from the violation list itself; there is no stored flag."""
        return self.violations is not None and len(self.violations) == 0

    @property
    def is_busy(self) -> bool:
        return self.validating or self.committing
